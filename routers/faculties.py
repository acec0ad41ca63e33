"""
Faculty listing used by the registration form and filters.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.models import Faculty
from auth.dependencies import get_db_session


router = APIRouter(prefix="/api/faculties", tags=["faculties"])


def faculty_info(faculty: Faculty) -> dict:
    return {
        "faculty_id": faculty.faculty_id,
        "faculty_name": faculty.faculty_name,
        "description": faculty.description,
    }


@router.get("")
async def list_faculties(db: Session = Depends(get_db_session)):
    """All faculties ordered by name. Public."""
    faculties = db.query(Faculty).order_by(Faculty.faculty_name.asc()).all()
    return [faculty_info(f) for f in faculties]
