"""initial portal schema

Revision ID: 1a2f0c9e7b31
Revises:
Create Date: 2026-06-01 08:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2f0c9e7b31'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('phone_number', sa.String(30), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('profile_picture', sa.String(500), nullable=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_full_name', 'users', ['full_name'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_archived', 'users', ['archived'])

    op.create_table(
        'identity_credentials',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_sign_in', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_identity_credentials_email', 'identity_credentials', ['email'], unique=True)

    op.create_table(
        'user_registrations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('phone_number', sa.String(30), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('profile_picture', sa.String(500), nullable=True),
        sa.Column('valid_id_document', sa.String(500), nullable=True),
        sa.Column('reason_for_application', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.String(36), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_by', sa.String(36), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_user_registrations_email', 'user_registrations', ['email'])
    op.create_index('ix_user_registrations_status', 'user_registrations', ['status'])

    op.create_table(
        'pupils',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('lrn', sa.String(12), nullable=False),
        sa.Column('first_name', sa.String(120), nullable=False),
        sa.Column('middle_name', sa.String(120), nullable=True),
        sa.Column('last_name', sa.String(120), nullable=False),
        sa.Column('gender', sa.String(10), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=False),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('profile_picture', sa.String(500), nullable=True),
        sa.Column('grade_level', sa.Integer(), nullable=False),
        sa.Column('section', sa.String(80), nullable=False),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('is_4ps_beneficiary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('enrollment_date', sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_pupils_lrn', 'pupils', ['lrn'], unique=True)
    op.create_index('ix_pupils_first_name', 'pupils', ['first_name'])
    op.create_index('ix_pupils_last_name', 'pupils', ['last_name'])
    op.create_index('ix_pupils_gender', 'pupils', ['gender'])
    op.create_index('ix_pupils_grade_level', 'pupils', ['grade_level'])
    op.create_index('ix_pupils_section', 'pupils', ['section'])
    op.create_index('ix_pupils_parent_id', 'pupils', ['parent_id'])
    op.create_index('ix_pupils_archived', 'pupils', ['archived'])

    op.create_table(
        'subjects',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('code', sa.String(30), nullable=False),
        sa.Column('grade_level', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('code', 'grade_level', name='unique_subject_code_grade'),
    )
    op.create_index('ix_subjects_name', 'subjects', ['name'])
    op.create_index('ix_subjects_code', 'subjects', ['code'])
    op.create_index('ix_subjects_grade_level', 'subjects', ['grade_level'])

    op.create_table(
        'grades',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('pupil_id', sa.String(36), sa.ForeignKey('pupils.id'), nullable=False),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id'), nullable=False),
        sa.Column('quarter', sa.Integer(), nullable=False),
        sa.Column('final_grade', sa.Float(), nullable=False),
        sa.Column('teacher_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('remarks', sa.String(255), nullable=True),
        sa.Column('is_finalized', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('pupil_id', 'subject_id', 'quarter', name='unique_pupil_subject_quarter_grade'),
    )
    op.create_index('ix_grades_pupil_id', 'grades', ['pupil_id'])
    op.create_index('ix_grades_subject_id', 'grades', ['subject_id'])
    op.create_index('ix_grades_quarter', 'grades', ['quarter'])
    op.create_index('ix_grades_teacher_id', 'grades', ['teacher_id'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('pupil_id', sa.String(36), sa.ForeignKey('pupils.id'), nullable=False),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('time_in', sa.Time(), nullable=True),
        sa.Column('remarks', sa.String(255), nullable=True),
        sa.Column('excuse_reason', sa.String(255), nullable=True),
        sa.Column('teacher_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('pupil_id', 'subject_id', 'date', name='unique_pupil_subject_date_attendance'),
    )
    op.create_index('ix_attendance_pupil_id', 'attendance', ['pupil_id'])
    op.create_index('ix_attendance_subject_id', 'attendance', ['subject_id'])
    op.create_index('ix_attendance_date', 'attendance', ['date'])
    op.create_index('ix_attendance_teacher_id', 'attendance', ['teacher_id'])

    op.create_table(
        'teacher_classes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('teacher_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('grade_level', sa.Integer(), nullable=False),
        sa.Column('section', sa.String(80), nullable=False),
        sa.Column('school_year', sa.String(9), nullable=False),
        sa.Column('is_class_adviser', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('teacher_id', 'grade_level', 'section', 'school_year', name='unique_teacher_class_year'),
    )
    op.create_index('ix_teacher_classes_teacher_id', 'teacher_classes', ['teacher_id'])
    op.create_index('ix_teacher_classes_grade_level', 'teacher_classes', ['grade_level'])
    op.create_index('ix_teacher_classes_section', 'teacher_classes', ['section'])
    op.create_index('ix_teacher_classes_school_year', 'teacher_classes', ['school_year'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('action', sa.String(80), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('recipient_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('sender_id', sa.String(36), nullable=True),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_read', 'notifications', ['read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'system_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('value_type', sa.String(20), nullable=False, server_default='string'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('category', 'key', name='unique_system_category_key'),
    )


def downgrade():
    for table in ('system_settings', 'notifications', 'audit_logs', 'teacher_classes', 'attendance',
                  'grades', 'subjects', 'pupils', 'user_registrations', 'identity_credentials', 'users'):
        op.drop_table(table)
