"""create docking_results table

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'e1f2a3b4c5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'docking_results',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('protein', sa.Text(), nullable=False),
        sa.Column('ligand', sa.Text(), nullable=False),
        sa.Column('binding_energy', sa.Float(), nullable=False),
        sa.Column('docking_tool', sa.String(length=100), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('file_hash', sa.String(length=64), nullable=False),
        sa.Column('timestamp', sa.String(length=40), nullable=False),
        sa.Column('solana_tx', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_index('idx_docking_results_protein', 'docking_results', ['protein'])
    op.create_index('idx_docking_results_ligand', 'docking_results', ['ligand'])
    op.create_index('idx_docking_results_file_hash', 'docking_results', ['file_hash'])


def downgrade() -> None:
    op.drop_index('idx_docking_results_file_hash', table_name='docking_results')
    op.drop_index('idx_docking_results_ligand', table_name='docking_results')
    op.drop_index('idx_docking_results_protein', table_name='docking_results')
    op.drop_table('docking_results')
