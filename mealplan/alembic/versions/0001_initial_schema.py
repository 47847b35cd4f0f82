"""initial_schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MEAL_SLOT = sa.Enum('BREAKFAST', 'LUNCH', 'DINNER', 'SNACK', name='mealslot')
MEAL_STATUS = sa.Enum('PLANNED', 'COMPLETED', 'SKIPPED', name='mealstatus')
PLAN_STATE = sa.Enum('ACTIVE', 'ARCHIVED', 'CANCELLED', name='planstate')


def upgrade() -> None:
    """Create recipe catalogue and plan tables."""
    # Create recipes table
    op.create_table(
        'recipes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('slug', sa.String(255), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('calories_per_portion', sa.Float(), nullable=False),
        sa.Column('portions', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('prep_minutes', sa.Integer(), nullable=True),
        sa.Column('cook_minutes', sa.Integer(), nullable=True),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('source_url', sa.String(1024), nullable=True),
        sa.Column('ingredients', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_recipes_name', 'recipes', ['name'])
    op.create_index('ix_recipes_calories_per_portion', 'recipes', ['calories_per_portion'])

    # Create recipe_slots table
    op.create_table(
        'recipe_slots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('recipe_id', sa.Uuid(), nullable=False),
        sa.Column('slot', MEAL_SLOT, nullable=False),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('recipe_id', 'slot', name='uq_recipe_slots_recipe_id_slot'),
    )
    op.create_index('ix_recipe_slots_recipe_id', 'recipe_slots', ['recipe_id'])
    op.create_index('ix_recipe_slots_slot', 'recipe_slots', ['slot'])

    # Create plans table
    op.create_table(
        'plans',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('state', PLAN_STATE, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('daily_calories', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_plans_owner_id', 'plans', ['owner_id'])
    op.create_index('ix_plans_state', 'plans', ['state'])
    op.create_index('ix_plans_owner_id_created_at', 'plans', ['owner_id', 'created_at'])
    # At most one active plan per owner
    op.create_index(
        'uq_plans_owner_id_active',
        'plans',
        ['owner_id'],
        unique=True,
        postgresql_where=sa.text("state = 'ACTIVE'"),
        sqlite_where=sa.text("state = 'ACTIVE'"),
    )

    # Create plan_days table
    op.create_table(
        'plan_days',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('plan_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plan_id', 'date', name='uq_plan_days_plan_id_date'),
    )
    op.create_index('ix_plan_days_plan_id', 'plan_days', ['plan_id'])

    # Create plan_day_slot_targets table
    op.create_table(
        'plan_day_slot_targets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('plan_day_id', sa.Uuid(), nullable=False),
        sa.Column('slot', MEAL_SLOT, nullable=False),
        sa.Column('calories_target', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['plan_day_id'], ['plan_days.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plan_day_id', 'slot', name='uq_plan_day_slot_targets_day_slot'),
    )
    op.create_index('ix_plan_day_slot_targets_plan_day_id', 'plan_day_slot_targets', ['plan_day_id'])

    # Create plan_meals table
    op.create_table(
        'plan_meals',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('plan_id', sa.Uuid(), nullable=False),
        sa.Column('plan_day_id', sa.Uuid(), nullable=False),
        sa.Column('slot', MEAL_SLOT, nullable=False),
        sa.Column('status', MEAL_STATUS, nullable=False),
        sa.Column('recipe_id', sa.Uuid(), nullable=False),
        sa.Column('portion_multiplier', sa.Integer(), nullable=False),
        sa.Column('calories_planned', sa.Integer(), nullable=False),
        sa.Column('is_leftover', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('multi_portion_group_id', sa.Uuid(), nullable=True),
        sa.Column('portions_to_cook', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id']),
        sa.ForeignKeyConstraint(['plan_day_id'], ['plan_days.id']),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plan_day_id', 'slot', name='uq_plan_meals_day_slot'),
    )
    op.create_index('ix_plan_meals_plan_id', 'plan_meals', ['plan_id'])
    op.create_index('ix_plan_meals_plan_day_id', 'plan_meals', ['plan_day_id'])
    op.create_index('ix_plan_meals_multi_portion_group_id', 'plan_meals', ['multi_portion_group_id'])
    op.create_index('ix_plan_meals_plan_id_status', 'plan_meals', ['plan_id', 'status'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('plan_meals')
    op.drop_table('plan_day_slot_targets')
    op.drop_table('plan_days')
    op.drop_index('uq_plans_owner_id_active', table_name='plans')
    op.drop_table('plans')
    op.drop_table('recipe_slots')
    op.drop_table('recipes')

    # Drop enums
    PLAN_STATE.drop(op.get_bind(), checkfirst=True)
    MEAL_STATUS.drop(op.get_bind(), checkfirst=True)
    MEAL_SLOT.drop(op.get_bind(), checkfirst=True)
