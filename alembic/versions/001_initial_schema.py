"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2025-09-02

Creates the course catalog, the local user mirror, and saved schedule rows.
"""
from alembic import op
import sqlalchemy as sa


revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_code', sa.String(20), nullable=False),
        sa.Column('section', sa.String(10), nullable=False),
        sa.Column('term', sa.String(10), nullable=False),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('campus', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('seats_total', sa.Integer(), nullable=True),
        sa.Column('seats_available', sa.Integer(), nullable=True),
        sa.Column('days', sa.JSON(), nullable=True),
        sa.Column('time_start', sa.String(5), nullable=True),
        sa.Column('time_end', sa.String(5), nullable=True),
        sa.Column('instructor', sa.String(100), nullable=True),
        sa.Column('location', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.UniqueConstraint('course_code', 'section', 'term', name='uq_courses_code_section_term'),
    )
    op.create_index('ix_courses_course_code', 'courses', ['course_code'])
    op.create_index('ix_courses_term', 'courses', ['term'])
    op.create_index('ix_courses_updated_at', 'courses', ['updated_at'])
    op.create_index('ix_courses_term_code', 'courses', ['term', 'course_code'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('auth_id', sa.String(100), nullable=False),
        sa.Column('username', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=True),
        sa.Column('has_seen_tutorial', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
    )
    op.create_index('ix_users_auth_id', 'users', ['auth_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table(
        'user_schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('schedule_name', sa.String(100), nullable=False),
        sa.Column('course_name', sa.String(20), nullable=False),
        sa.Column('course_section', sa.String(10), nullable=True),
        sa.Column('day', sa.String(3), nullable=False),
        sa.Column('time', sa.String(5), nullable=False),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
    )
    op.create_index('ix_user_schedules_user_id', 'user_schedules', ['user_id'])
    op.create_index('ix_user_schedules_user_name', 'user_schedules', ['user_id', 'schedule_name'])


def downgrade() -> None:
    op.drop_index('ix_user_schedules_user_name', table_name='user_schedules')
    op.drop_index('ix_user_schedules_user_id', table_name='user_schedules')
    op.drop_table('user_schedules')

    op.drop_index('ix_users_username', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_auth_id', table_name='users')
    op.drop_table('users')

    op.drop_index('ix_courses_term_code', table_name='courses')
    op.drop_index('ix_courses_updated_at', table_name='courses')
    op.drop_index('ix_courses_term', table_name='courses')
    op.drop_index('ix_courses_course_code', table_name='courses')
    op.drop_table('courses')
