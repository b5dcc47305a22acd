"""Create production core schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types ---
merchant_status_enum = ENUM(
    "ACTIVE", "INACTIVE", "SUSPENDED", "VIP", name="merchantstatus", create_type=False
)
user_status_enum = ENUM("ACTIVE", "INACTIVE", name="userstatus", create_type=False)
staff_role_enum = ENUM(
    "ADMIN", "MANAGER", "BAKER", "DECORATOR", "QUALITY_INSPECTOR", "PACKER", "DRIVER", "STAFF",
    name="staffrole", create_type=False,
)
department_enum = ENUM(
    "MANAGEMENT", "PRODUCTION", "KITCHEN", "DECORATING", "QUALITY_CONTROL", "PACKAGING",
    "INVENTORY", "DELIVERY",
    name="department", create_type=False,
)
order_status_enum = ENUM(
    "PENDING", "CONFIRMED", "CANCELLED", "COMPLETED", name="orderstatus", create_type=False
)
workflow_type_enum = ENUM(
    "STANDARD", "RUSH", "CUSTOM", "CAKES", "CUPCAKES", "COOKIES", "PASTRIES",
    name="workflowtype", create_type=False,
)
job_ticket_status_enum = ENUM(
    "PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="jobticketstatus", create_type=False
)
job_ticket_priority_enum = ENUM(
    "NORMAL", "HIGH", "URGENT", name="jobticketpriority", create_type=False
)
step_status_enum = ENUM(
    "PENDING", "ACTIVE", "COMPLETED", "SKIPPED", name="stepstatus", create_type=False
)
transition_type_enum = ENUM(
    "CREATE", "ADVANCE", "ROLLBACK", "COMPLETE", "CANCEL",
    name="jobtickettransitiontype", create_type=False,
)
price_tier_enum = ENUM("STANDARD", "VOLUME", "PREMIUM", name="pricetier", create_type=False)
tracking_status_enum = ENUM(
    "FRESH", "WARNING", "EXPIRED", "SOLD_OUT", "COLLECTED", name="trackingstatus", create_type=False
)
waste_collection_status_enum = ENUM(
    "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED",
    name="wastecollectionstatus", create_type=False,
)
payment_status_enum = ENUM(
    "UNPAID", "PARTIAL", "PAID", "OVERDUE", name="paymentstatus", create_type=False
)
event_status_enum = ENUM(
    "PENDING", "PROCESSING", "COMPLETED", "FAILED", name="eventstatus", create_type=False
)

_ENUMS = [
    merchant_status_enum,
    user_status_enum,
    staff_role_enum,
    department_enum,
    order_status_enum,
    workflow_type_enum,
    job_ticket_status_enum,
    job_ticket_priority_enum,
    step_status_enum,
    transition_type_enum,
    price_tier_enum,
    tracking_status_enum,
    waste_collection_status_enum,
    payment_status_enum,
    event_status_enum,
]


def _id() -> sa.Column:
    return sa.Column(
        "id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    for enum_type in _ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    # 1. merchants
    op.create_table(
        "merchants",
        _id(),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("location_address", sa.Text, nullable=False),
        sa.Column("contact_person_name", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(30), nullable=True),
        sa.Column("credit_limit", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("account_status", merchant_status_enum, server_default="ACTIVE", nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_merchants_account_status", "merchants", ["account_status"])

    # 2. users
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("role", staff_role_enum, server_default="STAFF", nullable=False),
        sa.Column("department", department_enum, nullable=True),
        sa.Column("status", user_status_enum, server_default="ACTIVE", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_role_department", "users", ["role", "department"])
    op.create_index("ix_users_status", "users", ["status"])

    # 3. inventory_items
    op.create_table(
        "inventory_items",
        _id(),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("unit_of_measurement", sa.String(20), server_default="unit", nullable=False),
        sa.Column("cost_per_unit", sa.Numeric(10, 2), nullable=False),
        sa.Column("current_quantity", sa.Numeric(10, 3), server_default="0", nullable=False),
        sa.Column("minimum_stock_level", sa.Numeric(10, 3), server_default="0", nullable=False),
        *_timestamps(),
    )

    # 4. recipes
    op.create_table(
        "recipes",
        _id(),
        sa.Column("recipe_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("cost_per_unit", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("shelf_life_days", sa.Integer, server_default="3", nullable=False),
        sa.Column("active_status", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )

    # 5. recipe_ingredients
    op.create_table(
        "recipe_ingredients",
        _id(),
        sa.Column("recipe_id", UUID(as_uuid=True), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("inventory_item_id", UUID(as_uuid=True), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_required", sa.Numeric(10, 3), nullable=False),
    )
    op.create_index("ix_recipe_ingredients_recipe_id", "recipe_ingredients", ["recipe_id"])

    # 6. workflows
    op.create_table(
        "workflows",
        _id(),
        sa.Column("workflow_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("workflow_steps", JSONB, server_default="[]", nullable=False),
        sa.Column("estimated_total_duration_minutes", sa.Integer, server_default="0", nullable=False),
        sa.Column("workflow_type", workflow_type_enum, nullable=False),
        sa.Column("active_status", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_workflows_type_active", "workflows", ["workflow_type", "active_status"])

    # 7. orders
    op.create_table(
        "orders",
        _id(),
        sa.Column("merchant_id", UUID(as_uuid=True), sa.ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source_ref", sa.String(255), nullable=True),
        sa.Column("order_items", JSONB, server_default="[]", nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("order_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("requested_delivery_date", sa.Date, nullable=False),
        sa.Column("status", order_status_enum, server_default="PENDING", nullable=False),
        sa.Column("special_notes", sa.Text, nullable=True),
        sa.Column("delivery_address", sa.Text, nullable=False),
        sa.Column("assigned_workflow_id", UUID(as_uuid=True), sa.ForeignKey("workflows.id", ondelete="SET NULL"), nullable=True),
        sa.Column("payment_terms_override", sa.String(30), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_merchant_id", "orders", ["merchant_id"])
    op.create_index("ix_orders_status", "orders", ["status"])

    # 8. job_tickets
    op.create_table(
        "job_tickets",
        _id(),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("workflow_id", UUID(as_uuid=True), sa.ForeignKey("workflows.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("job_ticket_number", sa.String(20), unique=True, nullable=False),
        sa.Column("priority_level", job_ticket_priority_enum, server_default="NORMAL", nullable=False),
        sa.Column("status", job_ticket_status_enum, server_default="PENDING", nullable=False),
        sa.Column("current_step_number", sa.Integer, server_default="1", nullable=False),
        sa.Column("start_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_completion_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_completion_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_production_cost", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("quality_notes", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_job_tickets_status", "job_tickets", ["status"])
    op.create_index("ix_job_tickets_workflow_id", "job_tickets", ["workflow_id"])

    # 9. job_ticket_steps
    op.create_table(
        "job_ticket_steps",
        _id(),
        sa.Column("job_ticket_id", UUID(as_uuid=True), sa.ForeignKey("job_tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("step_number", sa.Integer, nullable=False),
        sa.Column("step_name", sa.String(255), nullable=False),
        sa.Column("assigned_role", staff_role_enum, nullable=False),
        sa.Column("required_department", department_enum, nullable=True),
        sa.Column("step_type", sa.String(50), server_default="production", nullable=False),
        sa.Column("assigned_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", step_status_enum, server_default="PENDING", nullable=False),
        sa.Column("start_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completion_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("time_spent_minutes", sa.Integer, nullable=True),
        sa.Column("quality_check_passed", sa.Boolean, nullable=True),
        sa.Column("next_step_override", sa.Integer, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("job_ticket_id", "step_number", name="uq_job_ticket_steps_number"),
    )
    op.create_index("ix_job_ticket_steps_assignee_status", "job_ticket_steps", ["assigned_user_id", "status"])

    # 10. job_ticket_transitions (immutable, no updated_at)
    op.create_table(
        "job_ticket_transitions",
        _id(),
        sa.Column("job_ticket_id", UUID(as_uuid=True), sa.ForeignKey("job_tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("transition_type", transition_type_enum, nullable=False),
        sa.Column("from_step", sa.Integer, nullable=True),
        sa.Column("to_step", sa.Integer, nullable=True),
        sa.Column("from_status", job_ticket_status_enum, nullable=True),
        sa.Column("to_status", job_ticket_status_enum, nullable=False),
        sa.Column("triggered_by", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_job_ticket_transitions_ticket_id", "job_ticket_transitions", ["job_ticket_id"])

    # 11. merchant_pricing
    op.create_table(
        "merchant_pricing",
        _id(),
        sa.Column("merchant_id", UUID(as_uuid=True), sa.ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipe_id", UUID(as_uuid=True), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("base_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("merchant_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("markup_percentage", sa.Numeric(7, 2), nullable=False),
        sa.Column("effective_date", sa.Date, nullable=False),
        sa.Column("expiration_date", sa.Date, nullable=True),
        sa.Column("price_tier", price_tier_enum, server_default="STANDARD", nullable=False),
        sa.Column("created_by_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_merchant_pricing_lookup", "merchant_pricing", ["merchant_id", "recipe_id", "effective_date"]
    )

    # 12. merchant_product_tracking
    op.create_table(
        "merchant_product_tracking",
        _id(),
        sa.Column("merchant_id", UUID(as_uuid=True), sa.ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipe_id", UUID(as_uuid=True), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("job_ticket_id", UUID(as_uuid=True), sa.ForeignKey("job_tickets.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quantity_delivered", sa.Numeric(10, 3), nullable=False),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expiration_date", sa.Date, nullable=False),
        sa.Column("current_estimated_quantity", sa.Numeric(10, 3), nullable=False),
        sa.Column("status", tracking_status_enum, server_default="FRESH", nullable=False),
        sa.Column("collection_required", sa.Boolean, server_default="false", nullable=False),
        sa.Column("driver_notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("current_estimated_quantity >= 0", name="ck_tracking_quantity_non_negative"),
    )
    op.create_index(
        "ix_merchant_product_tracking_fifo",
        "merchant_product_tracking",
        ["merchant_id", "recipe_id", "delivery_date"],
    )
    op.create_index(
        "ix_merchant_product_tracking_expiration", "merchant_product_tracking", ["expiration_date"]
    )

    # 13. waste_collections
    op.create_table(
        "waste_collections",
        _id(),
        sa.Column("merchant_id", UUID(as_uuid=True), sa.ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scheduled_collection_date", sa.Date, nullable=False),
        sa.Column("assigned_driver_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", waste_collection_status_enum, server_default="SCHEDULED", nullable=False),
        sa.Column("actual_collection_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("waste_items", JSONB, server_default="[]", nullable=False),
        sa.Column("total_waste_value", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("credited_to_merchant", sa.Boolean, server_default="false", nullable=False),
        sa.Column("driver_notes", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_waste_collections_merchant_status", "waste_collections", ["merchant_id", "status"])

    # 14. invoices
    op.create_table(
        "invoices",
        _id(),
        sa.Column("merchant_id", UUID(as_uuid=True), sa.ForeignKey("merchants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invoice_number", sa.String(50), unique=True, nullable=False),
        sa.Column("related_order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("issue_date", sa.Date, nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("payment_status", payment_status_enum, server_default="UNPAID", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_invoices_merchant_payment_status", "invoices", ["merchant_id", "payment_status"])

    # 15. event_outbox
    op.create_table(
        "event_outbox",
        _id(),
        sa.Column("event_type", sa.String(255), nullable=False),
        sa.Column("aggregate_type", sa.String(255), nullable=False),
        sa.Column("aggregate_id", sa.String(255), nullable=False),
        sa.Column("payload", JSONB, server_default="{}", nullable=False),
        sa.Column("status", event_status_enum, server_default="PENDING", nullable=False),
        sa.Column("retry_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("max_retries", sa.Integer, server_default="3", nullable=False),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("schema_version", sa.Integer, server_default="1", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_event_outbox_status", "event_outbox", ["status"])
    op.create_index("ix_event_outbox_event_type", "event_outbox", ["event_type"])
    op.create_index("ix_event_outbox_aggregate", "event_outbox", ["aggregate_type", "aggregate_id"])


def downgrade() -> None:
    op.drop_table("event_outbox")
    op.drop_table("invoices")
    op.drop_table("waste_collections")
    op.drop_table("merchant_product_tracking")
    op.drop_table("merchant_pricing")
    op.drop_table("job_ticket_transitions")
    op.drop_table("job_ticket_steps")
    op.drop_table("job_tickets")
    op.drop_table("orders")
    op.drop_table("workflows")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipes")
    op.drop_table("inventory_items")
    op.drop_table("users")
    op.drop_table("merchants")

    for enum_type in reversed(_ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
