"""Create users, snippets and snippet_tags tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema for CodeVault.
How:   Column rationale is documented in codevault/models/.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(50), nullable=False, comment="Login name, unique, case-sensitive"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="Argon2 digest of the password (salted)"),
        sa.Column("display_name", sa.String(100), nullable=False, comment="Name shown in the UI"),
        sa.Column("bio", sa.Text(), nullable=True, comment="Optional profile bio"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # Unique index is the final arbiter for concurrent registrations
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "snippets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("language", sa.String(50), nullable=False, comment="python, javascript, csharp, ..."),
        sa.Column("framework", sa.String(50), nullable=False, comment="react, django, dotnet, ... (optional)"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("copy_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("previous_version_id", sa.Integer(), nullable=True),
        sa.Column("folder_path", sa.String(500), nullable=True, comment="e.g. /work/apis/authentication"),
        sa.Column("source_url", sa.String(2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["previous_version_id"], ["snippets.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_snippets_user_id", "snippets", ["user_id"])
    op.create_index("idx_snippets_is_public", "snippets", ["is_public"])

    op.create_table(
        "snippet_tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("snippet_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.ForeignKeyConstraint(["snippet_id"], ["snippets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_snippet_tags_snippet_id", "snippet_tags", ["snippet_id"])
    op.create_index("idx_snippet_tags_name", "snippet_tags", ["name"])


def downgrade() -> None:
    """
    Drop all tables. WARNING: destructive, every user and snippet is lost.
    """
    op.drop_index("idx_snippet_tags_name", table_name="snippet_tags")
    op.drop_index("idx_snippet_tags_snippet_id", table_name="snippet_tags")
    op.drop_table("snippet_tags")
    op.drop_index("idx_snippets_is_public", table_name="snippets")
    op.drop_index("idx_snippets_user_id", table_name="snippets")
    op.drop_table("snippets")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
