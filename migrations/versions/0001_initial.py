"""initial tables: users, recurrence rules, per-date exceptions

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('recurrence_rules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_rule_day_of_week'),
        sa.CheckConstraint('end_time > start_time', name='ck_rule_time_range'),
    )
    op.create_index('ix_recurrence_rules_owner_id', 'recurrence_rules', ['owner_id'])
    op.create_index('ix_rule_owner_day_active', 'recurrence_rules', ['owner_id', 'day_of_week', 'is_active'])

    op.create_table('schedule_exceptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('rule_id', sa.Integer(), sa.ForeignKey('recurrence_rules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('rule_id', 'date', name='uq_exception_rule_date'),
        sa.CheckConstraint(
            '(is_deleted AND start_time IS NULL AND end_time IS NULL)'
            ' OR (NOT is_deleted AND start_time IS NOT NULL AND end_time IS NOT NULL'
            ' AND end_time > start_time)',
            name='ck_exception_override_shape',
        ),
    )
    op.create_index('ix_schedule_exceptions_rule_id', 'schedule_exceptions', ['rule_id'])

def downgrade():
    op.drop_index('ix_schedule_exceptions_rule_id', table_name='schedule_exceptions')
    op.drop_table('schedule_exceptions')
    op.drop_index('ix_rule_owner_day_active', table_name='recurrence_rules')
    op.drop_index('ix_recurrence_rules_owner_id', table_name='recurrence_rules')
    op.drop_table('recurrence_rules')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
