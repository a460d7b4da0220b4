"""Rename user_id columns to chat_id

Reminders belong to the chat they were created in, which is not always the
creating user's private chat.

Revision ID: 0a1b2c3d4e04
Revises: 0a1b2c3d4e03
Create Date: 2022-11-15

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1b2c3d4e04"
down_revision: Union[str, Sequence[str], None] = "0a1b2c3d4e03"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLES = ("reminder", "cron_reminder")


def upgrade() -> None:
    """Upgrade schema."""
    for table in TABLES:
        with op.batch_alter_table(table) as batch_op:
            batch_op.alter_column("user_id", new_column_name="chat_id")
        op.create_index(f"idx_{table}_chat_id", table, ["chat_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table in TABLES:
        op.drop_index(f"idx_{table}_chat_id", table_name=table)
        with op.batch_alter_table(table) as batch_op:
            batch_op.alter_column("chat_id", new_column_name="user_id")
