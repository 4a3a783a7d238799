"""add positions, position titles and reporting edges

Revision ID: c4e1a7b29d30
Revises:
Create Date: 2026-03-02 10:14:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c4e1a7b29d30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('positions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('scope_id', sa.String(length=64), nullable=True),
        sa.Column('full_name', sa.String(length=128), nullable=True),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('affiliation', sa.String(length=128), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_positions_scope_id', 'positions', ['scope_id'])

    op.create_table('position_titles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=128), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('title')
    )

    op.create_table('reporting_edges',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('child_position_id', sa.String(length=64), nullable=False),
        sa.Column('parent_position_id', sa.String(length=64), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(length=128), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_by', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['child_position_id'], ['positions.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['parent_position_id'], ['positions.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'child_position_id <> parent_position_id',
            name='ck_reporting_edges_no_self_loop',
        ),
        sa.CheckConstraint(
            'end_date IS NULL OR end_date >= start_date',
            name='ck_reporting_edges_end_after_start',
        ),
        sa.UniqueConstraint(
            'child_position_id', 'parent_position_id', 'start_date',
            name='uq_reporting_edges_natural_key',
        ),
    )
    op.create_index(
        'ix_reporting_edges_child_position_id', 'reporting_edges', ['child_position_id']
    )
    op.create_index(
        'ix_reporting_edges_parent_position_id', 'reporting_edges', ['parent_position_id']
    )

    # One open edge per child: NULL end_date marks the active reporting line
    op.create_index(
        'uq_reporting_edges_one_active_per_child',
        'reporting_edges',
        ['child_position_id'],
        unique=True,
        postgresql_where=sa.text('end_date IS NULL'),
        sqlite_where=sa.text('end_date IS NULL'),
    )


def downgrade():
    op.drop_index('uq_reporting_edges_one_active_per_child', table_name='reporting_edges')
    op.drop_index('ix_reporting_edges_parent_position_id', table_name='reporting_edges')
    op.drop_index('ix_reporting_edges_child_position_id', table_name='reporting_edges')
    op.drop_table('reporting_edges')
    op.drop_table('position_titles')
    op.drop_index('ix_positions_scope_id', table_name='positions')
    op.drop_table('positions')
