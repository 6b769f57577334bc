"""add SHIPPED to order_status_enum

Revision ID: 8b42e6d0c5a3
Revises: 3f9a1c2b7d10
Create Date: 2026-10-15 16:41:27.530961

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '8b42e6d0c5a3'
down_revision: Union[str, Sequence[str], None] = '3f9a1c2b7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(
        "ALTER TYPE order_status_enum ADD VALUE IF NOT EXISTS 'SHIPPED' AFTER 'PROCESSING'"
    )


def downgrade() -> None:
    """Downgrade schema."""
    # Postgres cannot drop a value from an enum type
    pass
