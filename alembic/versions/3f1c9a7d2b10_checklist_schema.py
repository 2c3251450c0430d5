"""checklist schema

Revision ID: 3f1c9a7d2b10
Revises: 
Create Date: 2025-12-08 09:14:02.118342

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE = sa.text("is_deleted = false")


def upgrade() -> None:
    op.create_table(
        'detail_categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category_type', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('classification_criteria', sa.JSON(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_detail_categories_id', 'detail_categories', ['id'])

    op.create_table(
        'checklist_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('detail_categories.id'), nullable=False),
        sa.Column('item_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('baseline', sa.Integer(), nullable=True),
        sa.Column('owner', sa.String(), nullable=False, server_default='employee'),
        sa.Column('task_type', sa.String(), nullable=True),
        sa.Column('evaluator', sa.String(), nullable=True),
        sa.Column('scope', sa.String(), nullable=True),
        sa.Column('time_frame', sa.String(), nullable=True),
        sa.Column('penalty_level_1', sa.Text(), nullable=True),
        sa.Column('penalty_level_2', sa.Text(), nullable=True),
        sa.Column('penalty_level_3', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_checklist_items_id', 'checklist_items', ['id'])

    op.create_table(
        'approval_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('checklist_items.id'), nullable=False),
        sa.Column('staff_id', sa.String(), nullable=False),
        sa.Column('store_id', sa.String(), nullable=False),
        sa.Column('assessment_date', sa.Date(), nullable=False),
        sa.Column('employee_checked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('employee_checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cht_checked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cht_checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('asm_checked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('asm_checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deadline_date', sa.Date(), nullable=True),
        sa.Column('is_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('implementation_issues', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_approval_records_id', 'approval_records', ['id'])
    op.create_index('ix_approval_records_staff_id', 'approval_records', ['staff_id'])
    op.create_index('ix_approval_sweep', 'approval_records', ['deadline_date', 'is_locked'])
    op.create_index(
        'uq_approval_item_staff_date', 'approval_records',
        ['item_id', 'staff_id', 'assessment_date'],
        unique=True, postgresql_where=ACTIVE, sqlite_where=ACTIVE,
    )

    op.create_table(
        'monthly_tracking_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('checklist_items.id'), nullable=False),
        sa.Column('staff_id', sa.String(), nullable=False),
        sa.Column('store_id', sa.String(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('daily_checks', sa.JSON().with_variant(postgresql.ARRAY(sa.Boolean()), 'postgresql'), nullable=False),
        sa.Column('successful_completions', sa.Integer(), nullable=True),
        sa.Column('achievement_percentage', sa.Float(), nullable=True),
        sa.Column('score_achieved', sa.Float(), nullable=True),
        sa.Column('classification', sa.String(), nullable=True),
        sa.Column('implementation_issues_count', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_monthly_tracking_records_id', 'monthly_tracking_records', ['id'])
    op.create_index('ix_monthly_tracking_records_staff_id', 'monthly_tracking_records', ['staff_id'])
    op.create_index(
        'uq_monthly_item_staff_period', 'monthly_tracking_records',
        ['item_id', 'staff_id', 'month', 'year'],
        unique=True, postgresql_where=ACTIVE, sqlite_where=ACTIVE,
    )

    op.create_table(
        'employee_monthly_scores',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('staff_id', sa.String(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('final_classification', sa.String(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_employee_monthly_scores_id', 'employee_monthly_scores', ['id'])
    op.create_index('ix_employee_monthly_scores_staff_id', 'employee_monthly_scores', ['staff_id'])
    op.create_index(
        'uq_score_staff_period', 'employee_monthly_scores',
        ['staff_id', 'month', 'year'],
        unique=True, postgresql_where=ACTIVE, sqlite_where=ACTIVE,
    )


def downgrade() -> None:
    op.drop_table('employee_monthly_scores')
    op.drop_table('monthly_tracking_records')
    op.drop_table('approval_records')
    op.drop_table('checklist_items')
    op.drop_table('detail_categories')
