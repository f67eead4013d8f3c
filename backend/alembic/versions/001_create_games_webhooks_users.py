"""Create users, games and webhook_registrations tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema for the marketplace.
How:   The unique constraints carry the identifier and registration rules:
       - games.resource_id is unique; concurrent inserts of the same
         identifier fail for all but one request
       - (owner, event_type, recipient_url) is unique per registration

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
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "games",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "resource_id",
            sa.String(2100),
            nullable=False,
            comment="Human-readable unique identifier: <console>/<slug>[(n)]",
        ),
        sa.Column("game_title", sa.String(1000), nullable=False),
        sa.Column(
            "console",
            sa.String(20),
            nullable=False,
            comment="Canonical console code (nes, snes, n64, ...)",
        ),
        sa.Column("condition", sa.Integer(), nullable=False, comment="1 (poor) to 5 (mint)"),
        sa.Column("image_url", sa.String(1000), nullable=False),
        sa.Column("city", sa.String(1000), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner", sa.String(320), nullable=False),
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
        sa.UniqueConstraint("resource_id", name="uq_games_resource_id"),
    )
    op.create_index("idx_games_owner", "games", ["owner"])
    op.create_index("idx_games_console", "games", ["console"])

    op.create_table(
        "webhook_registrations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner", sa.String(320), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("recipient_url", sa.String(2000), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "owner", "event_type", "recipient_url",
            name="uq_webhook_owner_event_recipient",
        ),
    )
    op.create_index("idx_webhook_event_type", "webhook_registrations", ["event_type"])


def downgrade() -> None:
    op.drop_index("idx_webhook_event_type", table_name="webhook_registrations")
    op.drop_table("webhook_registrations")
    op.drop_index("idx_games_console", table_name="games")
    op.drop_index("idx_games_owner", table_name="games")
    op.drop_table("games")
    op.drop_table("users")
