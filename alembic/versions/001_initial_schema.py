"""Initial schema — agents, orders, activity log and presence.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users (agents and supervisors)
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("agent_code", sa.String(50), unique=True, nullable=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("max_orders", sa.Integer, nullable=False, server_default="50"),
    )
    op.create_index("idx_users_role_active", "users", ["role", "is_active"])

    # Orders
    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reference", sa.String(100), unique=True, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("assigned_agent_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_orders_assigned_agent_status", "orders", ["assigned_agent_id", "status"])
    op.create_index("idx_orders_created_at", "orders", ["created_at"])
    op.create_index("idx_orders_order_date", "orders", ["order_date"])
    op.create_index("idx_orders_assigned_at", "orders", ["assigned_at"])

    # Order line items
    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "order_id", sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", sa.String(300), nullable=True),
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("idx_order_items_order", "order_items", ["order_id"])

    # Activity log (append-only)
    op.create_table(
        "agent_activities",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("order_id", sa.String(36), nullable=True),
        sa.Column("activity_type", sa.String(30), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_activities_agent_created", "agent_activities", ["agent_id", "created_at"])
    op.create_index("idx_activities_type_created", "agent_activities", ["activity_type", "created_at"])

    # Presence
    op.create_table(
        "agent_presence",
        sa.Column("agent_id", sa.String(36), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("presence", sa.String(20), nullable=False, server_default="OFFLINE"),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )


def downgrade() -> None:
    op.drop_table("agent_presence")
    op.drop_table("agent_activities")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("users")
