"""User profiles: full name, age, profile image and soft delete.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from catalog.storage.naming import generate_folder_id

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add profile columns and give existing users a folder id."""
    with op.batch_alter_table("users") as batch:
        batch.add_column(sa.Column("full_name", sa.String(100), nullable=True))
        batch.add_column(sa.Column("age", sa.Integer(), nullable=True))
        batch.add_column(sa.Column("image", sa.JSON(), nullable=True))
        batch.add_column(sa.Column("folder_id", sa.String(32), nullable=True))
        batch.add_column(
            sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false())
        )
        batch.add_column(sa.Column("updated_by", sa.String(36), nullable=True))
        batch.add_column(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))

    conn = op.get_bind()
    taken: set[str] = set()
    for (user_id,) in conn.execute(sa.text("SELECT id FROM users")).fetchall():
        folder_id = generate_folder_id()
        while folder_id in taken:
            folder_id = generate_folder_id()
        taken.add(folder_id)
        conn.execute(
            sa.text("UPDATE users SET folder_id = :folder_id WHERE id = :id"),
            {"folder_id": folder_id, "id": user_id},
        )

    with op.batch_alter_table("users") as batch:
        batch.alter_column("folder_id", existing_type=sa.String(32), nullable=False)
        batch.create_unique_constraint("uq_users_folder_id", ["folder_id"])


def downgrade() -> None:
    """Drop the profile columns."""
    with op.batch_alter_table("users") as batch:
        batch.drop_constraint("uq_users_folder_id", type_="unique")
        for column in ("updated_at", "updated_by", "is_deleted", "folder_id", "image", "age", "full_name"):
            batch.drop_column(column)
