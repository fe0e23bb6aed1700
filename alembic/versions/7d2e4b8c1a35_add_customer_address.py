"""add customer address

Revision ID: 7d2e4b8c1a35
Revises: 4a1c9e2f7b10
Create Date: 2026-10-19 14:03:27.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '7d2e4b8c1a35'
down_revision: Union[str, Sequence[str], None] = '4a1c9e2f7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column('appointments', sa.Column('customer_street', sa.String(length=255), nullable=True))
    op.add_column('appointments', sa.Column('customer_postal_code', sa.String(length=10), nullable=True))
    op.add_column('appointments', sa.Column('customer_city', sa.String(length=100), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_column('appointments', 'customer_city')
    op.drop_column('appointments', 'customer_postal_code')
    op.drop_column('appointments', 'customer_street')
