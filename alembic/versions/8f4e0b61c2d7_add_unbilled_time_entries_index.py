"""add unbilled time entries index

Revision ID: 8f4e0b61c2d7
Revises: 3c1d9a7e52b0
Create Date: 2026-10-02 16:40:51.093118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8f4e0b61c2d7'
down_revision: Union[str, Sequence[str], None] = '3c1d9a7e52b0'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Serves the unbilled listing: invoiced_at IS NULL ORDER BY occurred_on DESC
    op.create_index(
        "ix_time_entries_unbilled_occurred_on",
        "time_entries",
        ["occurred_on"],
        unique=False,
        postgresql_where=sa.text("invoiced_at IS NULL"),
        sqlite_where=sa.text("invoiced_at IS NULL"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_time_entries_unbilled_occurred_on", table_name="time_entries")
