"""Initial schema.

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

Creates:
- admin_users (moderator accounts)
- admin_sessions (database-backed sessions)
- archived_petitions (read-only petition archive)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Apply migration: initial schema."""
    admin_role = postgresql.ENUM("sysadmin", "moderator", name="admin_role", create_type=False)
    admin_role.create(op.get_bind(), checkfirst=True)

    archived_petition_state = postgresql.ENUM(
        "open",
        "closed",
        "rejected",
        "hidden",
        name="archived_petition_state",
        create_type=False,
    )
    archived_petition_state.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", admin_role, nullable=False, server_default="moderator"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "force_password_reset", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("password_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_login_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_admin_users")),
        sa.UniqueConstraint("email", name=op.f("uq_admin_users_email")),
    )

    op.create_table(
        "admin_sessions",
        sa.Column(
            "session_id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        *_timestamps(),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("admin_user_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "last_activity_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("ip_address", postgresql.INET(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revocation_reason", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("session_id", name=op.f("pk_admin_sessions")),
        sa.UniqueConstraint("token_hash", name=op.f("uq_admin_sessions_token_hash")),
        sa.ForeignKeyConstraint(
            ["admin_user_id"],
            ["admin_users.id"],
            name=op.f("fk_admin_sessions_admin_user_id_admin_users"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_admin_sessions_admin_user_id"), "admin_sessions", ["admin_user_id"]
    )
    op.create_index(op.f("ix_admin_sessions_expires_at"), "admin_sessions", ["expires_at"])

    op.create_table(
        "archived_petitions",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        *_timestamps(),
        sa.Column("action", sa.String(255), nullable=False),
        sa.Column("background", sa.String(500), nullable=True),
        sa.Column("additional_details", sa.Text(), nullable=True),
        sa.Column("state", archived_petition_state, nullable=False),
        sa.Column("signature_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("government_response_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("debate_outcome_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_code", sa.String(50), nullable=True),
        sa.Column("rejection_details", sa.Text(), nullable=True),
        sa.Column("parliament_period", sa.String(20), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_archived_petitions")),
    )
    op.create_index(op.f("ix_archived_petitions_state"), "archived_petitions", ["state"])
    op.create_index(
        op.f("ix_archived_petitions_signature_count"),
        "archived_petitions",
        ["signature_count"],
    )


def downgrade() -> None:
    """Revert migration: drop all tables and enum types."""
    op.drop_index(op.f("ix_archived_petitions_signature_count"), table_name="archived_petitions")
    op.drop_index(op.f("ix_archived_petitions_state"), table_name="archived_petitions")
    op.drop_table("archived_petitions")
    op.drop_index(op.f("ix_admin_sessions_expires_at"), table_name="admin_sessions")
    op.drop_index(op.f("ix_admin_sessions_admin_user_id"), table_name="admin_sessions")
    op.drop_table("admin_sessions")
    op.drop_table("admin_users")
    op.execute("DROP TYPE IF EXISTS archived_petition_state")
    op.execute("DROP TYPE IF EXISTS admin_role")
