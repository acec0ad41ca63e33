"""
Local filesystem storage for submission uploads.
Files live under UPLOADS_DIR/user_<id>/ and are referenced from the
submissions table as "uploads/user_<id>/<name>".
"""
import random
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional

from core.logger import logger
import config

PATH_PREFIX = "uploads"


def user_dir_name(user_id: int) -> str:
    """user_<id>"""
    return f"user_{user_id}"


def stored_filename(extension: str) -> str:
    """file-<epoch ms>-<random><ext>"""
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"file-{suffix}{extension.lower()}"


class LocalStorage:
    """Store, resolve and delete uploaded files below a root directory."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else Path(config.UPLOADS_DIR)

    def save_upload(self, fileobj: BinaryIO, user_id: int, extension: str) -> str:
        """
        Copy an upload stream into the user's directory.

        Args:
            fileobj: Readable binary stream positioned at the start
            user_id: Owner of the upload
            extension: Original extension including the dot ("" when none)

        Returns:
            Relative file path to store in the database
        """
        user_dir = self.root / user_dir_name(user_id)
        user_dir.mkdir(parents=True, exist_ok=True)
        filename = stored_filename(extension)
        destination = user_dir / filename
        with open(destination, "wb") as out:
            shutil.copyfileobj(fileobj, out)
        logger.info(f"Stored upload for user {user_id}: {destination}")
        return f"{PATH_PREFIX}/{user_dir_name(user_id)}/{filename}"

    def resolve(self, relative_path: Optional[str]) -> Optional[Path]:
        """
        Absolute path for a stored relative path.

        Returns None for empty paths and for paths escaping the root.
        """
        if not relative_path:
            return None
        parts = [p for p in relative_path.replace("\\", "/").split("/") if p]
        if parts and parts[0] == PATH_PREFIX:
            parts = parts[1:]
        if not parts:
            return None
        root = self.root.resolve()
        candidate = root.joinpath(*parts).resolve()
        if root != candidate and root not in candidate.parents:
            logger.warning(f"Rejected stored path outside uploads root: {relative_path}")
            return None
        return candidate

    def exists(self, relative_path: Optional[str]) -> bool:
        path = self.resolve(relative_path)
        return path is not None and path.is_file()

    def delete(self, relative_path: Optional[str]) -> bool:
        """Remove a stored file; returns False when there was nothing to remove."""
        path = self.resolve(relative_path)
        if path is None or not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Error deleting file {path}: {e}")
            return False
        return True

    def delete_user_dir(self, user_id: int) -> None:
        """Remove a user's whole upload directory."""
        user_dir = self.root / user_dir_name(user_id)
        if user_dir.is_dir():
            shutil.rmtree(user_dir, ignore_errors=True)
            logger.info(f"Removed upload directory {user_dir}")


def get_storage() -> LocalStorage:
    """Storage rooted at the configured uploads directory."""
    return LocalStorage(config.UPLOADS_DIR)
