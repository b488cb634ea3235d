"""registration role details and parent/teacher profiles

Revision ID: 5c8d1e2f4a90
Revises: 1a2f0c9e7b31
Create Date: 2026-06-15 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c8d1e2f4a90'
down_revision = '1a2f0c9e7b31'
branch_labels = None
depends_on = None

REGISTRATION_COLUMNS = (
    ('occupation', sa.String(120)),
    ('emergency_contact', sa.String(200)),
    ('emergency_phone', sa.String(30)),
    ('employee_id', sa.String(50)),
    ('department', sa.String(120)),
    ('position', sa.String(120)),
    ('specialization', sa.String(120)),
    ('education_level', sa.String(120)),
    ('years_experience', sa.Integer()),
)


def upgrade():
    with op.batch_alter_table('user_registrations', schema=None) as batch_op:
        for name, column_type in REGISTRATION_COLUMNS:
            batch_op.add_column(sa.Column(name, column_type, nullable=True))

    op.create_table(
        'parent_profiles',
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('occupation', sa.String(120), nullable=False),
        sa.Column('emergency_contact', sa.String(200), nullable=False),
        sa.Column('emergency_phone', sa.String(30), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'teacher_profiles',
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('employee_id', sa.String(50), nullable=False),
        sa.Column('department', sa.String(120), nullable=False),
        sa.Column('position', sa.String(120), nullable=False),
        sa.Column('specialization', sa.String(120), nullable=True),
        sa.Column('education_level', sa.String(120), nullable=True),
        sa.Column('years_experience', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_teacher_profiles_employee_id', 'teacher_profiles', ['employee_id'])


def downgrade():
    op.drop_index('ix_teacher_profiles_employee_id', table_name='teacher_profiles')
    op.drop_table('teacher_profiles')
    op.drop_table('parent_profiles')

    with op.batch_alter_table('user_registrations', schema=None) as batch_op:
        for name, _ in reversed(REGISTRATION_COLUMNS):
            batch_op.drop_column(name)
