"""Create ideas, api_keys and api_rate_limits tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: idea records, issued API keys and hourly rate-limit counters.
How:   Portable column types (Uuid, JSON with a JSONB variant) so the same
       migration runs on PostgreSQL and on SQLite for local development.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "ideas",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "user_id",
            sa.String(64),
            nullable=False,
            comment="Owning principal; immutable after insert",
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True, comment="Sanitized markdown"),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'idea'"),
            comment="idea, research, progress, launched, archived",
        ),
        sa.Column("tags", _JSON, nullable=False),
        sa.Column("color", sa.String(7), nullable=False, server_default=sa.text("'#6B7280'")),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # List queries: WHERE user_id = ? ORDER BY updated_at DESC
    op.create_index(
        "idx_ideas_user_updated_at",
        "ideas",
        ["user_id", sa.text("updated_at DESC")],
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "key_hash",
            sa.String(64),
            nullable=False,
            comment="HMAC-SHA256 hex digest of the raw key; the key itself is never stored",
        ),
        sa.Column("permissions", _JSON, nullable=False),
        sa.Column("rate_limit_per_hour", sa.Integer(), nullable=False, server_default=sa.text("1000")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key_hash"),
    )
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])

    op.create_table(
        "api_rate_limits",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("api_key_id", sa.Uuid(), nullable=False),
        sa.Column("endpoint", sa.String(100), nullable=False),
        sa.Column(
            "window_start",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Start of the UTC hour this counter covers",
        ),
        sa.Column("requests_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["api_key_id"], ["api_keys.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        # Target of the ON CONFLICT clause in the rate limiter's upsert
        sa.UniqueConstraint(
            "api_key_id", "endpoint", "window_start",
            name="uq_api_rate_limits_key_endpoint_window",
        ),
    )


def downgrade() -> None:
    op.drop_table("api_rate_limits")
    op.drop_index("ix_api_keys_user_id", table_name="api_keys")
    op.drop_table("api_keys")
    op.drop_index("idx_ideas_user_updated_at", table_name="ideas")
    op.drop_table("ideas")
