# Import all models so SQLAlchemy metadata is populated for Alembic and create_all
from bakeflow.models.enums import (
    Department,
    EventStatus,
    JobTicketPriority,
    JobTicketStatus,
    JobTicketTransitionType,
    MerchantStatus,
    OrderStatus,
    PaymentStatus,
    PriceTier,
    ProgressOutcome,
    StaffRole,
    StepStatus,
    TrackingStatus,
    UserStatus,
    WasteCollectionStatus,
    WorkflowType,
)
from bakeflow.models.event_outbox import EventOutbox
from bakeflow.models.inventory_item import InventoryItem
from bakeflow.models.invoice import Invoice
from bakeflow.models.job_ticket import JobTicket
from bakeflow.models.job_ticket_step import JobTicketStep
from bakeflow.models.job_ticket_transition import JobTicketTransition
from bakeflow.models.merchant import Merchant
from bakeflow.models.merchant_pricing import MerchantPricing
from bakeflow.models.merchant_product_tracking import MerchantProductTracking
from bakeflow.models.order import Order
from bakeflow.models.recipe import Recipe, RecipeIngredient
from bakeflow.models.user import User
from bakeflow.models.waste_collection import WasteCollection
from bakeflow.models.workflow import Workflow

__all__ = [
    "Department",
    "EventOutbox",
    "EventStatus",
    "InventoryItem",
    "Invoice",
    "JobTicket",
    "JobTicketPriority",
    "JobTicketStatus",
    "JobTicketStep",
    "JobTicketTransition",
    "JobTicketTransitionType",
    "Merchant",
    "MerchantPricing",
    "MerchantProductTracking",
    "MerchantStatus",
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "PriceTier",
    "ProgressOutcome",
    "Recipe",
    "RecipeIngredient",
    "StaffRole",
    "StepStatus",
    "TrackingStatus",
    "User",
    "UserStatus",
    "WasteCollection",
    "WasteCollectionStatus",
    "Workflow",
]
