"""Add edit mode and message reference columns

Revision ID: 0a1b2c3d4e06
Revises: 0a1b2c3d4e05
Create Date: 2022-12-03

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e06"
down_revision: Union[str, Sequence[str], None] = "0a1b2c3d4e05"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("reminder", "cron_reminder")


def upgrade() -> None:
    """Upgrade schema."""
    for table in TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.add_column(
                sa.Column("edit_mode", sa.String(length=20), nullable=False, server_default="none")
            )
            batch_op.add_column(sa.Column("msg_id", sa.BigInteger(), nullable=True))
            batch_op.add_column(sa.Column("reply_id", sa.BigInteger(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    for table in TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.drop_column("reply_id")
            batch_op.drop_column("msg_id")
            batch_op.drop_column("edit_mode")
