"""Pydantic v2 schemas for order intake and orchestration results."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from bakeflow.models.enums import (
    JobTicketPriority,
    JobTicketStatus,
    OrderStatus,
)
from bakeflow.modules.waste.schemas import WastePreventionSummary

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OrderItemIn(BaseModel):
    recipe_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    recipe_name: str | None = Field(None, max_length=255)
    catalog: dict | None = None

    @property
    def label(self) -> str:
        return self.recipe_name or f"Recipe ID: {self.recipe_id}"

    def to_order_item(self) -> dict:
        """JSON form persisted on ``Order.order_items``."""
        return self.model_dump(mode="json", exclude_none=True)


class OrderIntake(BaseModel):
    """Normalized order handed over by an inbound channel adapter."""

    merchant_id: uuid.UUID
    items: list[OrderItemIn] = Field(..., min_length=1)
    delivery_date: date | None = None
    special_notes: str | None = None
    delivery_address: str | None = None
    source_ref: str | None = Field(None, max_length=255)


class ManualOrderIntake(BaseModel):
    """Admin-entered order with an explicit total and workflow."""

    merchant_id: uuid.UUID
    items: list[OrderItemIn] = Field(..., min_length=1)
    total_amount: Decimal = Field(..., ge=0)
    delivery_date: date
    delivery_address: str | None = None
    workflow_id: uuid.UUID
    status: OrderStatus = OrderStatus.PENDING
    special_notes: str | None = None
    payment_terms_override: str | None = Field(None, max_length=30)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    merchant_id: uuid.UUID
    source_ref: str | None = None
    order_items: list[dict]
    total_amount: Decimal
    order_date: datetime
    requested_delivery_date: date
    status: OrderStatus
    special_notes: str | None = None
    delivery_address: str
    assigned_workflow_id: uuid.UUID | None = None


class JobTicketSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_ticket_number: str
    workflow_id: uuid.UUID
    status: JobTicketStatus
    priority_level: JobTicketPriority
    current_step_number: int
    estimated_completion_timestamp: datetime | None = None


class OrderProcessingResult(BaseModel):
    """Single success/failure outcome of ``OrderOrchestrator.process_order``."""

    success: bool
    order: OrderResponse | None = None
    job_ticket: JobTicketSummary | None = None
    waste_prevention: WastePreventionSummary | None = None
    error_code: str | None = None
    message: str | None = None
    details: list[dict] = Field(default_factory=list)


class OrderStatusUpdateResult(BaseModel):
    order: OrderResponse
    previous_status: OrderStatus
    job_ticket_created: bool = False
    job_ticket_cancelled: bool = False
    job_ticket: JobTicketSummary | None = None
