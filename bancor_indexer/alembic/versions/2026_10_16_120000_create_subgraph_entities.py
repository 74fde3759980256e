"""create_subgraph_entities

Revision ID: 2026_10_16_120000
Revises:
Create Date: 2026-10-16 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '2026_10_16_120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE SCHEMA IF NOT EXISTS subgraph')
    op.create_table(
        'entities',
        sa.Column('entity_type', sa.Text(), nullable=False),
        sa.Column('entity_id', sa.Text(), nullable=False),
        sa.Column('data', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('updated_block', sa.BigInteger(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('entity_type', 'entity_id', name=op.f('pk_entities')),
        schema='subgraph',
    )
    op.create_index(
        'ix_subgraph_entities_type_block',
        'entities',
        ['entity_type', 'updated_block'],
        unique=False,
        schema='subgraph',
    )


def downgrade() -> None:
    op.drop_index('ix_subgraph_entities_type_block', table_name='entities', schema='subgraph')
    op.drop_table('entities', schema='subgraph')
