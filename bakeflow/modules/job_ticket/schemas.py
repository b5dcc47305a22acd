"""Pydantic v2 schemas for job tickets, steps and transitions."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from bakeflow.models.enums import (
    Department,
    JobTicketPriority,
    JobTicketStatus,
    JobTicketTransitionType,
    ProgressOutcome,
    StaffRole,
    StepStatus,
)


class JobTicketStepResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_number: int
    step_name: str
    assigned_role: StaffRole
    required_department: Department | None = None
    step_type: str
    assigned_user_id: uuid.UUID | None = None
    status: StepStatus
    start_timestamp: datetime | None = None
    completion_timestamp: datetime | None = None
    completed_by_user_id: uuid.UUID | None = None
    notes: str | None = None
    time_spent_minutes: int | None = None
    quality_check_passed: bool | None = None


class JobTicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    workflow_id: uuid.UUID
    job_ticket_number: str
    priority_level: JobTicketPriority
    status: JobTicketStatus
    current_step_number: int
    start_timestamp: datetime | None = None
    estimated_completion_timestamp: datetime | None = None
    actual_completion_timestamp: datetime | None = None
    total_production_cost: Decimal
    quality_notes: str | None = None


class JobTicketTransitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    transition_type: JobTicketTransitionType
    from_step: int | None = None
    to_step: int | None = None
    from_status: JobTicketStatus | None = None
    to_status: JobTicketStatus
    triggered_by: uuid.UUID | None = None
    reason: str | None = None
    created_at: datetime


class ProgressResult(BaseModel):
    outcome: ProgressOutcome
    job_ticket_id: uuid.UUID
    status: JobTicketStatus
    current_step_number: int
    returned_to_step: int | None = None
    next_step: JobTicketStepResponse | None = None
    message: str
