from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import Department, StaffRole, StepStatus

if TYPE_CHECKING:
    from bakeflow.models.job_ticket import JobTicket


class JobTicketStep(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One materialized workflow step of a job ticket."""

    __tablename__ = "job_ticket_steps"

    job_ticket_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("job_tickets.id", ondelete="CASCADE"), nullable=False
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_role: Mapped[StaffRole] = mapped_column(nullable=False)
    required_department: Mapped[Department | None] = mapped_column()
    step_type: Mapped[str] = mapped_column(String(50), nullable=False, server_default="production")
    assigned_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    status: Mapped[StepStatus] = mapped_column(
        nullable=False, default=StepStatus.PENDING, server_default="PENDING"
    )
    start_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completion_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    notes: Mapped[str | None] = mapped_column(Text)
    time_spent_minutes: Mapped[int | None] = mapped_column(Integer)
    quality_check_passed: Mapped[bool | None] = mapped_column(Boolean)
    next_step_override: Mapped[int | None] = mapped_column(Integer)

    job_ticket: Mapped[JobTicket] = relationship(
        "JobTicket", back_populates="steps", lazy="noload"
    )

    __table_args__ = (
        UniqueConstraint("job_ticket_id", "step_number", name="uq_job_ticket_steps_number"),
        Index("ix_job_ticket_steps_assignee_status", "assigned_user_id", "status"),
    )
