"""JobTicket model: production work item tracking one order through a workflow."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import JobTicketPriority, JobTicketStatus

if TYPE_CHECKING:
    from bakeflow.models.job_ticket_step import JobTicketStep
    from bakeflow.models.job_ticket_transition import JobTicketTransition
    from bakeflow.models.order import Order
    from bakeflow.models.workflow import Workflow


class JobTicket(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "job_tickets"

    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    workflow_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workflows.id", ondelete="RESTRICT"), nullable=False
    )
    job_ticket_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    priority_level: Mapped[JobTicketPriority] = mapped_column(
        nullable=False, default=JobTicketPriority.NORMAL, server_default="NORMAL"
    )
    status: Mapped[JobTicketStatus] = mapped_column(
        nullable=False, default=JobTicketStatus.PENDING, server_default="PENDING"
    )
    current_step_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    start_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    estimated_completion_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    actual_completion_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    total_production_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    quality_notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    order: Mapped[Order] = relationship("Order", back_populates="job_ticket", lazy="noload")
    workflow: Mapped[Workflow] = relationship("Workflow", lazy="noload")
    steps: Mapped[list[JobTicketStep]] = relationship(
        "JobTicketStep",
        back_populates="job_ticket",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JobTicketStep.step_number",
    )
    transitions: Mapped[list[JobTicketTransition]] = relationship(
        "JobTicketTransition",
        back_populates="job_ticket",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_job_tickets_status", "status"),
        Index("ix_job_tickets_workflow_id", "workflow_id"),
    )
