"""Initial schema - roles, faculties, users, submissions, comments, activity, settings

Revision ID: 001
Revises:
Create Date: 2025-01-15 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    roles = op.create_table(
        'roles',
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('role_code', sa.String(length=10), nullable=False),
        sa.Column('role_name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('role_id'),
        sa.UniqueConstraint('role_code')
    )
    op.bulk_insert(roles, [
        {'role_id': 1, 'role_code': 'ADMIN', 'role_name': 'Administrator', 'description': 'Full system access'},
        {'role_id': 2, 'role_code': 'MNGR', 'role_name': 'Marketing Manager', 'description': 'University marketing manager'},
        {'role_id': 3, 'role_code': 'COORD', 'role_name': 'Faculty Coordinator', 'description': 'Faculty marketing coordinator'},
        {'role_id': 4, 'role_code': 'STUD', 'role_name': 'Student', 'description': 'Regular student user'},
    ])

    op.create_table(
        'faculties',
        sa.Column('faculty_id', sa.Integer(), nullable=False),
        sa.Column('faculty_name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('faculty_id'),
        sa.UniqueConstraint('faculty_name')
    )
    op.create_index('ix_faculties_faculty_id', 'faculties', ['faculty_id'])

    op.create_table(
        'users',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('faculty_id', sa.Integer(), nullable=True),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['faculty_id'], ['faculties.faculty_id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.role_id']),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_user_id', 'users', ['user_id'])
    op.create_index('idx_user_faculty', 'users', ['faculty_id'])
    op.create_index('idx_user_role', 'users', ['role_id'])

    op.create_table(
        'submissions',
        sa.Column('submission_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('faculty_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_type', sa.String(length=10), nullable=False),
        sa.Column('original_filename', sa.String(length=255), nullable=True),
        sa.Column('academic_year', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='Submitted'),
        sa.Column('selected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('terms_accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['faculty_id'], ['faculties.faculty_id']),
        sa.PrimaryKeyConstraint('submission_id')
    )
    op.create_index('ix_submissions_submission_id', 'submissions', ['submission_id'])
    op.create_index('idx_submission_user', 'submissions', ['user_id'])
    op.create_index('idx_submission_faculty', 'submissions', ['faculty_id'])
    op.create_index('idx_submission_status', 'submissions', ['status'])
    op.create_index('idx_submission_selected', 'submissions', ['selected'])
    op.create_index('idx_submission_submitted', 'submissions', ['submitted_at'])

    op.create_table(
        'comments',
        sa.Column('comment_id', sa.Integer(), nullable=False),
        sa.Column('submission_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('comment_text', sa.Text(), nullable=False),
        sa.Column('commented_at', sa.DateTime(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.submission_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('comment_id')
    )
    op.create_index('ix_comments_comment_id', 'comments', ['comment_id'])
    op.create_index('idx_comment_submission', 'comments', ['submission_id'])

    op.create_table(
        'activitylogs',
        sa.Column('log_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action_type', sa.String(length=50), nullable=False),
        sa.Column('action_details', sa.Text(), nullable=True),
        sa.Column('log_timestamp', sa.DateTime(), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('log_id')
    )
    op.create_index('ix_activitylogs_log_id', 'activitylogs', ['log_id'])
    op.create_index('idx_activity_user', 'activitylogs', ['user_id'])
    op.create_index('idx_activity_timestamp', 'activitylogs', ['log_timestamp'])

    op.create_table(
        'page_visits',
        sa.Column('visit_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('page_url', sa.String(length=500), nullable=False),
        sa.Column('visit_timestamp', sa.DateTime(), nullable=False),
        sa.Column('browser_info', sa.String(length=500), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('visit_id')
    )
    op.create_index('ix_page_visits_visit_id', 'page_visits', ['visit_id'])
    op.create_index('idx_page_visit_timestamp', 'page_visits', ['visit_timestamp'])
    op.create_index('idx_page_visit_url', 'page_visits', ['page_url'])

    op.create_table(
        'academic_settings',
        sa.Column('setting_id', sa.Integer(), nullable=False),
        sa.Column('academic_year', sa.String(length=20), nullable=False),
        sa.Column('submission_deadline', sa.Date(), nullable=False),
        sa.Column('final_edit_deadline', sa.Date(), nullable=False),
        sa.Column('publication_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('setting_id')
    )

    op.create_table(
        'user_settings',
        sa.Column('setting_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('notification_settings', sa.JSON(), nullable=True),
        sa.Column('display_settings', sa.JSON(), nullable=True),
        sa.Column('export_settings', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('setting_id'),
        sa.UniqueConstraint('user_id')
    )


def downgrade() -> None:
    op.drop_table('user_settings')
    op.drop_table('academic_settings')
    op.drop_index('idx_page_visit_url', table_name='page_visits')
    op.drop_index('idx_page_visit_timestamp', table_name='page_visits')
    op.drop_index('ix_page_visits_visit_id', table_name='page_visits')
    op.drop_table('page_visits')
    op.drop_index('idx_activity_timestamp', table_name='activitylogs')
    op.drop_index('idx_activity_user', table_name='activitylogs')
    op.drop_index('ix_activitylogs_log_id', table_name='activitylogs')
    op.drop_table('activitylogs')
    op.drop_index('idx_comment_submission', table_name='comments')
    op.drop_index('ix_comments_comment_id', table_name='comments')
    op.drop_table('comments')
    op.drop_index('idx_submission_submitted', table_name='submissions')
    op.drop_index('idx_submission_selected', table_name='submissions')
    op.drop_index('idx_submission_status', table_name='submissions')
    op.drop_index('idx_submission_faculty', table_name='submissions')
    op.drop_index('idx_submission_user', table_name='submissions')
    op.drop_index('ix_submissions_submission_id', table_name='submissions')
    op.drop_table('submissions')
    op.drop_index('idx_user_role', table_name='users')
    op.drop_index('idx_user_faculty', table_name='users')
    op.drop_index('ix_users_user_id', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_faculties_faculty_id', table_name='faculties')
    op.drop_table('faculties')
    op.drop_table('roles')
