"""Add delivery attempt counters

Revision ID: 0a1b2c3d4e07
Revises: 0a1b2c3d4e06
Create Date: 2025-01-20

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e07"
down_revision: Union[str, Sequence[str], None] = "0a1b2c3d4e06"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("reminder", "cron_reminder")


def upgrade() -> None:
    """Upgrade schema."""
    for table in TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(
                sa.Column("delivery_attempts", sa.Integer(), nullable=False, server_default="0")
            )


def downgrade() -> None:
    """Downgrade schema."""
    for table in TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.drop_column("delivery_attempts")
