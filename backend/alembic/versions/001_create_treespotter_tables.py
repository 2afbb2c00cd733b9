"""Create users, meadows, trees and images tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema. Every entity table carries user_id and is indexed on
       it, since every query filters by owner.

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False, comment="bcrypt hash"),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "changed_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "meadows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("location", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("name", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("size", sa.Float(), nullable=False, server_default=sa.text("0")),
        # Ordered tree IDs, kept in step with trees.meadow_id by the application
        sa.Column(
            "tree_ids",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'[]'"),
            comment="Ordered IDs of the trees in this meadow (denormalized)",
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_meadows_user_id", "meadows", ["user_id"])

    op.create_table(
        "trees",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("plant_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("meadow_id", sa.Integer(), sa.ForeignKey("meadows.id"), nullable=False),
        sa.Column("position", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("type", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_trees_user_id", "trees", ["user_id"])
    op.create_index("idx_trees_meadow_id", "trees", ["meadow_id"])

    op.create_table(
        "images",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("path", sa.String(512), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "datetime",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("tree_id", sa.Integer(), sa.ForeignKey("trees.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_images_tree_id_user_id", "images", ["tree_id", "user_id"])


def downgrade() -> None:
    op.drop_index("idx_images_tree_id_user_id", table_name="images")
    op.drop_table("images")
    op.drop_index("idx_trees_meadow_id", table_name="trees")
    op.drop_index("idx_trees_user_id", table_name="trees")
    op.drop_table("trees")
    op.drop_index("idx_meadows_user_id", table_name="meadows")
    op.drop_table("meadows")
    op.drop_table("users")
