"""Add paused columns

Revision ID: 0a1b2c3d4e05
Revises: 0a1b2c3d4e04
Create Date: 2022-11-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e05"
down_revision: Union[str, Sequence[str], None] = "0a1b2c3d4e04"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("reminder", "cron_reminder")


def upgrade() -> None:
    """Upgrade schema."""
    for table in TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(
                sa.Column("paused", sa.Boolean(), nullable=False, server_default=sa.false())
            )
        op.create_index(f"idx_{table}_due", table, ["sent", "paused", "time"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table in TABLES:
        op.drop_index(f"idx_{table}_due", table_name=table)
        with op.batch_alter_table(table) as batch_op:
            batch_op.drop_column("paused")
