"""initial ordering schema

Revision ID: 5a1c0e7d9b21
Revises:
Create Date: 2026-10-19 09:12:40.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5a1c0e7d9b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False, index=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("password", sa.String(), nullable=True),
        sa.Column("role", sa.Enum("USER", "LOUNGE", "ADMIN", name="userrole"), nullable=False),
        sa.Column("can_login", sa.Boolean(), nullable=False),
        sa.Column("fcm_token", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "lounge",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, index=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("logo", sa.String(), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "food",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("lounge_id", sa.Integer(), sa.ForeignKey("lounge.id"), nullable=False, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("image", sa.String(), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("estimated_time", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "contract",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, index=True),
        sa.Column("lounge_id", sa.Integer(), sa.ForeignKey("lounge.id"), nullable=False, index=True),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("remaining_balance", sa.Float(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_expired", sa.Boolean(), nullable=False),
        sa.Column("renewal_count", sa.Integer(), nullable=False),
        sa.Column("payment_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "remaining_balance >= 0 AND remaining_balance <= total_amount",
            name="ck_contract_balance_range",
        ),
    )

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, index=True),
        sa.Column("order_id", sa.Integer(), nullable=True, index=True),
        sa.Column("contract_id", sa.Integer(), nullable=True, index=True),
        sa.Column("type", sa.Enum("order", "contract", "refund", name="paymenttype"), nullable=False),
        sa.Column("method", sa.String(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "completed", "failed", "refunded", name="paymentstatus"),
            nullable=False,
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("commission", sa.Float(), nullable=False),
        sa.Column("tx_ref", sa.String(), nullable=True, index=True),
        sa.Column("gateway_reference", sa.String(), nullable=True, unique=True),
        sa.Column("gateway_transaction_id", sa.String(), nullable=True, index=True),
        sa.Column("gateway_response", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False, index=True),
        sa.Column("lounge_id", sa.Integer(), sa.ForeignKey("lounge.id"), nullable=False, index=True),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("commission", sa.Float(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "preparing", "ready", "delivered", "cancelled", name="orderstatus"),
            nullable=False,
        ),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("payment_id", sa.Integer(), sa.ForeignKey("payment.id"), nullable=True),
        sa.Column("contract_id", sa.Integer(), sa.ForeignKey("contract.id"), nullable=True),
        sa.Column("qr_code", sa.String(), nullable=True, unique=True),
        sa.Column("qr_code_image", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "orderitem",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False, index=True),
        sa.Column("food_id", sa.Integer(), sa.ForeignKey("food.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("subtotal", sa.Float(), nullable=False),
        sa.Column("estimated_time", sa.Integer(), nullable=False),
    )

    op.create_table(
        "commission",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False, unique=True),
        sa.Column("lounge_id", sa.Integer(), sa.ForeignKey("lounge.id"), nullable=False, index=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.Column("order_amount", sa.Float(), nullable=False),
        sa.Column("recipient", sa.String(), nullable=False, server_default="system"),
        sa.Column(
            "status",
            sa.Enum("pending", "paid", "cancelled", name="commissionstatus"),
            nullable=False,
        ),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "recipient_role",
            sa.Enum("admin", "customer", "lounge", name="recipientrole"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("trigger_source", sa.String(), nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("channel", sa.Enum("push", "system", name="notificationchannel"), nullable=False),
        sa.Column("status", sa.Enum("sent", "failed", name="notificationstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table("notification")
    op.drop_table("commission")
    op.drop_table("orderitem")
    op.drop_table("order")
    op.drop_table("payment")
    op.drop_table("contract")
    op.drop_table("food")
    op.drop_table("lounge")
    op.drop_table("user")

    for enum_name in (
        "notificationstatus", "notificationchannel", "recipientrole",
        "commissionstatus", "orderstatus", "paymentstatus", "paymenttype", "userrole",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
