"""initial schema

Revision ID: a1c3e5f70b21
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False))
    return columns


def upgrade() -> None:
    # Accounts and periods
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('username', sa.String(length=100), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=False),
    sa.Column('first_name', sa.String(length=100), nullable=True),
    sa.Column('last_name', sa.String(length=100), nullable=True),
    sa.Column('role', sa.String(length=20), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    sa.Column('tutor_id', sa.Uuid(), nullable=True),
    sa.Column('assisted_tutor_id', sa.Uuid(), nullable=True),
    sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('experience', sa.Integer(), nullable=False, server_default='0'),
    *_timestamps(),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['assisted_tutor_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('username'),
    sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_role', 'users', ['role'], unique=False)
    op.create_index('idx_users_tutor', 'users', ['tutor_id'], unique=False)

    op.create_table('periods',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('start_date', sa.DateTime(), nullable=False),
    sa.Column('end_date', sa.DateTime(), nullable=True),
    sa.Column('total_weeks', sa.Integer(), nullable=False, server_default='8'),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='INACTIVE'),
    *_timestamps(),
    sa.CheckConstraint('total_weeks > 0'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )
    op.create_index('idx_periods_status', 'periods', ['status'], unique=False)
    # At most one ACTIVE period
    op.create_index(
        'uq_periods_single_active', 'periods', ['status'], unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
        sqlite_where=sa.text("status = 'ACTIVE'"),
    )

    # Ledgers
    op.create_table('point_reasons',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    sa.Column('created_by_id', sa.Uuid(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )

    op.create_table('points_transactions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('tutor_id', sa.Uuid(), nullable=True),
    sa.Column('points', sa.Integer(), nullable=False),
    sa.Column('type', sa.String(length=20), nullable=False),
    sa.Column('reason', sa.String(length=500), nullable=True),
    sa.Column('point_reason_id', sa.Uuid(), nullable=True),
    sa.Column('period_id', sa.Uuid(), nullable=False),
    sa.Column('rolled_back', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    *_timestamps(updated=False),
    sa.CheckConstraint('points > 0'),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['point_reason_id'], ['point_reasons.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['period_id'], ['periods.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_points_student_period', 'points_transactions', ['student_id', 'period_id'], unique=False)
    op.create_index('idx_points_tutor', 'points_transactions', ['tutor_id'], unique=False)
    op.create_index('idx_points_reason', 'points_transactions', ['point_reason_id'], unique=False)

    op.create_table('experience_transactions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('tutor_id', sa.Uuid(), nullable=True),
    sa.Column('amount', sa.Integer(), nullable=False),
    sa.Column('period_id', sa.Uuid(), nullable=False),
    sa.Column('rolled_back', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    *_timestamps(updated=False),
    sa.CheckConstraint('amount <> 0'),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['period_id'], ['periods.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_experience_student_period', 'experience_transactions', ['student_id', 'period_id'], unique=False)
    op.create_index('idx_experience_tutor', 'experience_transactions', ['tutor_id'], unique=False)

    op.create_table('transaction_rollbacks',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('transaction_id', sa.Uuid(), nullable=False),
    sa.Column('transaction_type', sa.String(length=20), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('admin_id', sa.Uuid(), nullable=True),
    sa.Column('reason', sa.Text(), nullable=False),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['admin_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('transaction_id', 'transaction_type', name='uq_rollback_transaction')
    )

    # Attendance
    op.create_table('attendance_sessions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('session_date', sa.DateTime(), nullable=False),
    sa.Column('qr_code_token', sa.String(length=64), nullable=True),
    sa.Column('qr_code_expires_at', sa.DateTime(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
    sa.Column('created_by_id', sa.Uuid(), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('qr_code_token')
    )
    op.create_index('idx_attendance_sessions_creator', 'attendance_sessions', ['created_by_id'], unique=False)
    op.create_index('idx_attendance_sessions_date', 'attendance_sessions', ['session_date'], unique=False)

    op.create_table('student_attendances',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('check_in_time', sa.DateTime(), nullable=False),
    sa.Column('check_in_method', sa.String(length=20), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['session_id'], ['attendance_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student')
    )
    op.create_index('idx_attendances_student', 'student_attendances', ['student_id'], unique=False)

    # Events
    op.create_table('event_types',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=100), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    *_timestamps(updated=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name')
    )

    op.create_table('events',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('event_type_id', sa.Uuid(), nullable=False),
    sa.Column('event_date', sa.DateTime(), nullable=False),
    sa.Column('location', sa.String(length=200), nullable=True),
    sa.Column('capacity', sa.Integer(), nullable=False),
    sa.Column('registered_count', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='UPCOMING'),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('qr_code_token', sa.String(length=64), nullable=True),
    sa.Column('qr_code_expires_at', sa.DateTime(), nullable=True),
    sa.Column('created_by_id', sa.Uuid(), nullable=False),
    *_timestamps(),
    sa.CheckConstraint('capacity > 0', name='ck_events_capacity_positive'),
    sa.CheckConstraint(
        'registered_count >= 0 AND registered_count <= capacity',
        name='ck_events_registered_within_capacity',
    ),
    sa.ForeignKeyConstraint(['event_type_id'], ['event_types.id'], ondelete='RESTRICT'),
    sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('qr_code_token')
    )
    op.create_index('idx_events_date', 'events', ['event_date'], unique=False)
    op.create_index('idx_events_status', 'events', ['status'], unique=False)

    op.create_table('event_participants',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('event_id', sa.Uuid(), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='REGISTERED'),
    sa.Column('check_in_method', sa.String(length=20), nullable=True),
    sa.Column('check_in_time', sa.DateTime(), nullable=True),
    sa.Column('registered_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('event_id', 'student_id', name='uq_event_participant')
    )
    op.create_index('idx_event_participants_student', 'event_participants', ['student_id'], unique=False)

    # Syllabus
    op.create_table('classrooms',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('tutor_id', sa.Uuid(), nullable=False),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_classrooms_tutor', 'classrooms', ['tutor_id'], unique=False)

    op.create_table('syllabi',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    sa.Column('is_global', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    sa.Column('share_token', sa.String(length=64), nullable=True),
    sa.Column('created_by_id', sa.Uuid(), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('share_token')
    )
    op.create_index('idx_syllabi_creator', 'syllabi', ['created_by_id'], unique=False)

    op.create_table('syllabus_lessons',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('syllabus_id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
    *_timestamps(),
    sa.ForeignKeyConstraint(['syllabus_id'], ['syllabi.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_lessons_syllabus_order', 'syllabus_lessons', ['syllabus_id', 'order_index'], unique=False)

    op.create_table('classroom_lesson_progress',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('classroom_id', sa.Uuid(), nullable=False),
    sa.Column('syllabus_id', sa.Uuid(), nullable=False),
    sa.Column('lesson_id', sa.Uuid(), nullable=False),
    sa.Column('is_taught', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    sa.Column('taught_date', sa.DateTime(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['classroom_id'], ['classrooms.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['syllabus_id'], ['syllabi.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['lesson_id'], ['syllabus_lessons.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('classroom_id', 'lesson_id', name='uq_progress_classroom_lesson')
    )
    op.create_index('idx_progress_syllabus', 'classroom_lesson_progress', ['syllabus_id'], unique=False)

    # Wishes and reports
    op.create_table('wishes',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('period_id', sa.Uuid(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
    sa.Column('admin_note', sa.Text(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['period_id'], ['periods.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_wishes_student', 'wishes', ['student_id'], unique=False)

    op.create_table('weekly_report_questions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('text', sa.Text(), nullable=False),
    sa.Column('type', sa.String(length=20), nullable=False),
    sa.Column('target_role', sa.String(length=20), nullable=False),
    sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    sa.Column('created_by_id', sa.Uuid(), nullable=True),
    *_timestamps(updated=False),
    sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_questions_type_role', 'weekly_report_questions', ['type', 'target_role', 'order_index'], unique=False)

    op.create_table('weekly_reports',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('period_id', sa.Uuid(), nullable=False),
    sa.Column('week_number', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='DRAFT'),
    sa.Column('submission_date', sa.DateTime(), nullable=True),
    sa.Column('review_date', sa.DateTime(), nullable=True),
    sa.Column('reviewed_by_id', sa.Uuid(), nullable=True),
    sa.Column('review_notes', sa.Text(), nullable=True),
    sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('comments', sa.Text(), nullable=True),
    *_timestamps(),
    sa.CheckConstraint('week_number > 0'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['period_id'], ['periods.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'period_id', 'week_number', name='uq_weekly_report_week')
    )
    op.create_index('idx_weekly_reports_period', 'weekly_reports', ['period_id'], unique=False)

    op.create_table('weekly_report_responses',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('report_id', sa.Uuid(), nullable=False),
    sa.Column('question_id', sa.Uuid(), nullable=False),
    sa.Column('response', sa.String(length=20), nullable=False),
    sa.ForeignKeyConstraint(['report_id'], ['weekly_reports.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['question_id'], ['weekly_report_questions.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('report_id', 'question_id', name='uq_report_question')
    )

    op.create_table('student_reports',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('student_id', sa.Uuid(), nullable=False),
    sa.Column('tutor_id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_student_reports_student', 'student_reports', ['student_id'], unique=False)


def downgrade() -> None:
    for table in (
        'student_reports',
        'weekly_report_responses',
        'weekly_reports',
        'weekly_report_questions',
        'wishes',
        'classroom_lesson_progress',
        'syllabus_lessons',
        'syllabi',
        'classrooms',
        'event_participants',
        'events',
        'event_types',
        'student_attendances',
        'attendance_sessions',
        'transaction_rollbacks',
        'experience_transactions',
        'points_transactions',
        'point_reasons',
        'periods',
        'users',
    ):
        op.drop_table(table)
