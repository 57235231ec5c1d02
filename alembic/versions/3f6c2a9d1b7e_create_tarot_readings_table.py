"""Create tarot_readings table

Revision ID: 3f6c2a9d1b7e
Revises:
Create Date: 2026-01-05 10:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f6c2a9d1b7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'tarot_readings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('cards', sa.JSON(), nullable=False),
        sa.Column('card_orientations', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ai_interpretation', sa.JSON(), nullable=True),
        sa.Column('interpretation_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tarot_readings_id'), 'tarot_readings', ['id'], unique=False)
    op.create_index(op.f('ix_tarot_readings_user_id'), 'tarot_readings', ['user_id'], unique=False)
    op.create_index(op.f('ix_tarot_readings_created_at'), 'tarot_readings', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_tarot_readings_created_at'), table_name='tarot_readings')
    op.drop_index(op.f('ix_tarot_readings_user_id'), table_name='tarot_readings')
    op.drop_index(op.f('ix_tarot_readings_id'), table_name='tarot_readings')
    op.drop_table('tarot_readings')
