"""create classmate hub schema

Revision ID: 1a2b3c4d5e60
Revises:
Create Date: 2026-01-10 09:00:00.000000

"""
from datetime import datetime
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e60'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_ROLES = ('student', 'teacher', 'advisor', 'coordinator', 'guest')


def upgrade() -> None:
    """Create users, photos, likes, tags and courses; seed the initial courses."""

    # 1. users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=True),  # NULL for Google-only accounts
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_token', sa.String(length=64), nullable=True),
        sa.Column('verification_token_expires', sa.DateTime(), nullable=True),
        sa.Column('reset_password_token', sa.String(length=64), nullable=True),
        sa.Column('reset_password_token_expires', sa.DateTime(), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('avatar', sa.String(), nullable=True),
        sa.Column('role', sa.Enum(*USER_ROLES, name='user_role'), nullable=False, server_default='student'),
        sa.Column('course_name', sa.String(length=100), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('whatsapp', sa.String(length=50), nullable=True),
        sa.Column('linkedin', sa.String(length=255), nullable=True),
        sa.Column('instagram', sa.String(length=100), nullable=True),
        sa.Column('github', sa.String(length=255), nullable=True),
        sa.Column('twitter', sa.String(length=100), nullable=True),
        sa.Column('bio', sa.String(length=500), nullable=True),
        sa.Column('company', sa.String(length=100), nullable=True),
        sa.Column('google_id', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('profile_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'], unique=False)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_google_id', 'users', ['google_id'], unique=True)
    op.create_index('ix_users_course_name', 'users', ['course_name'], unique=False)
    op.create_index('ix_users_country_city', 'users', ['country', 'city'], unique=False)
    op.create_index('ix_users_name', 'users', ['name'], unique=False)
    op.create_index('ix_users_verification_token', 'users', ['verification_token'], unique=False)
    op.create_index('ix_users_reset_password_token', 'users', ['reset_password_token'], unique=False)

    # 2. photos
    op.create_table(
        'photos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uploaded_by_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('public_id', sa.String(), nullable=False),
        sa.Column('thumbnail_url', sa.String(), nullable=True),
        sa.Column('title', sa.String(length=100), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('taken_at', sa.DateTime(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['uploaded_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_photos_id', 'photos', ['id'], unique=False)
    op.create_index('ix_photos_created_at', 'photos', ['created_at'], unique=False)
    op.create_index('ix_photos_uploaded_by_id', 'photos', ['uploaded_by_id'], unique=False)

    # 3. likes and tags (composite keys give set semantics)
    op.create_table(
        'photo_likes',
        sa.Column('photo_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['photo_id'], ['photos.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('photo_id', 'user_id')
    )
    op.create_table(
        'photo_tags',
        sa.Column('photo_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['photo_id'], ['photos.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('photo_id', 'user_id')
    )

    # 4. courses
    courses = op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_courses_id', 'courses', ['id'], unique=False)
    op.create_index('ix_courses_code', 'courses', ['code'], unique=True)
    op.create_index('ix_courses_is_active', 'courses', ['is_active'], unique=False)

    # 5. seed courses
    op.bulk_insert(courses, [
        {
            'name': 'Applied Data Science for Business',
            'code': 'ADBS',
            'start_date': datetime(2026, 1, 12),
            'end_date': datetime(2026, 1, 29),
            'location': 'London',
            'is_active': True,
        },
        {
            'name': 'Contemporary Topics in Business Strategy',
            'code': 'CTBS',
            'start_date': datetime(2026, 1, 12),
            'end_date': datetime(2026, 1, 29),
            'location': 'London',
            'is_active': True,
        },
    ])


def downgrade() -> None:
    """Drop the classmate hub schema."""

    op.drop_index('ix_courses_is_active', table_name='courses')
    op.drop_index('ix_courses_code', table_name='courses')
    op.drop_index('ix_courses_id', table_name='courses')
    op.drop_table('courses')

    op.drop_table('photo_tags')
    op.drop_table('photo_likes')

    op.drop_index('ix_photos_uploaded_by_id', table_name='photos')
    op.drop_index('ix_photos_created_at', table_name='photos')
    op.drop_index('ix_photos_id', table_name='photos')
    op.drop_table('photos')

    op.drop_index('ix_users_reset_password_token', table_name='users')
    op.drop_index('ix_users_verification_token', table_name='users')
    op.drop_index('ix_users_name', table_name='users')
    op.drop_index('ix_users_country_city', table_name='users')
    op.drop_index('ix_users_course_name', table_name='users')
    op.drop_index('ix_users_google_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')

    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
