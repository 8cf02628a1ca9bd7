"""stamp ledgers, reward events and notifications

Revision ID: 5e2a9c4d7b13
Revises: 
Create Date: 2026-10-19 09:12:41.208317

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5e2a9c4d7b13'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("customers"):
        op.create_table(
            "customers",
            sa.Column("id", sa.String(length=128), primary_key=True, nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=True),
            sa.Column("last_name", sa.String(length=100), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("dob", sa.String(length=5), nullable=True),
            sa.Column("role", sa.String(length=20), server_default="customer", nullable=False),
            sa.Column("fcm_tokens", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
        )
        op.create_index("ix_customers_email", "customers", ["email"], unique=False)
        op.create_index("ix_customers_phone", "customers", ["phone"], unique=False)

    if not inspector.has_table("stamp_ledgers"):
        op.create_table(
            "stamp_ledgers",
            sa.Column("customer_id", sa.String(length=128), sa.ForeignKey("customers.id"), primary_key=True, nullable=False),
            sa.Column("stamps", sa.JSON(), nullable=False),
            sa.Column("lifetime_stamps", sa.Integer(), server_default="0", nullable=False),
            sa.Column("rewards_earned", sa.Integer(), server_default="0", nullable=False),
            sa.Column("available_rewards", sa.Integer(), server_default="0", nullable=False),
            sa.Column("birthday_bonus_year", sa.Integer(), nullable=True),
            sa.Column("received_free_stamps", sa.Boolean(), server_default=sa.text("false"), nullable=False),
            sa.Column("reward_claimed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
            sa.Column("last_redemption_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("last_reward_claimed", sa.TIMESTAMP(), nullable=True),
            sa.Column("last_stamp_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("version", sa.Integer(), server_default="1", nullable=False),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
        )

    if not inspector.has_table("reward_events"):
        op.create_table(
            "reward_events",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(length=128), sa.ForeignKey("customers.id"), nullable=False),
            sa.Column("kind", sa.String(length=20), nullable=False),
            sa.Column("method", sa.String(length=20), nullable=False),
            sa.Column("staff_id", sa.String(length=128), nullable=True),
            sa.Column("stamps_before", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=False),
        )
        op.create_index("ix_reward_events_customer_id_created_at", "reward_events", ["customer_id", "created_at"], unique=False)

    if not inspector.has_table("automated_notifications"):
        op.create_table(
            "automated_notifications",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("enabled", sa.Boolean(), server_default=sa.text("true"), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=True),
            sa.Column("body", sa.String(length=1000), nullable=True),
            sa.Column("schedule", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
            sa.Column("params", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
            sa.Column("last_run_at", sa.TIMESTAMP(), nullable=True),
            sa.Column("next_run_at", sa.TIMESTAMP(), nullable=True),
            sa.Column("last_status", sa.String(length=20), nullable=True),
            sa.Column("last_error", sa.String(), nullable=True),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
        )

    if not inspector.has_table("notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("body", sa.String(length=1000), nullable=False),
            sa.Column("target", sa.String(length=30), nullable=False),
            sa.Column("target_user_id", sa.String(length=128), nullable=True),
            sa.Column("type", sa.String(length=50), server_default="general", nullable=False),
            sa.Column("click_action", sa.String(length=200), server_default="/profile", nullable=False),
            sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
            sa.Column("success_count", sa.Integer(), server_default="0", nullable=False),
            sa.Column("failure_count", sa.Integer(), server_default="0", nullable=False),
            sa.Column("actual_target_count", sa.Integer(), nullable=True),
            sa.Column("error", sa.String(), nullable=True),
            sa.Column(
                "rule_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("automated_notifications.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("processed_at", sa.TIMESTAMP(), nullable=True),
        )


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table("notifications"):
        op.drop_table("notifications")
    if inspector.has_table("automated_notifications"):
        op.drop_table("automated_notifications")
    if inspector.has_table("reward_events"):
        op.drop_index("ix_reward_events_customer_id_created_at", table_name="reward_events")
        op.drop_table("reward_events")
    if inspector.has_table("stamp_ledgers"):
        op.drop_table("stamp_ledgers")
    if inspector.has_table("customers"):
        op.drop_index("ix_customers_phone", table_name="customers")
        op.drop_index("ix_customers_email", table_name="customers")
        op.drop_table("customers")
