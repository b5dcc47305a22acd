from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakeflow.database.base import Base, UUIDPrimaryKeyMixin, utcnow
from bakeflow.models.enums import JobTicketStatus, JobTicketTransitionType

if TYPE_CHECKING:
    from bakeflow.models.job_ticket import JobTicket


class JobTicketTransition(UUIDPrimaryKeyMixin, Base):
    """Immutable audit log of job ticket moves. No updated_at column."""

    __tablename__ = "job_ticket_transitions"

    job_ticket_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("job_tickets.id", ondelete="CASCADE"),
        nullable=False,
    )
    transition_type: Mapped[JobTicketTransitionType] = mapped_column(nullable=False)
    from_step: Mapped[int | None] = mapped_column(Integer)
    to_step: Mapped[int | None] = mapped_column(Integer)
    from_status: Mapped[JobTicketStatus | None] = mapped_column()
    to_status: Mapped[JobTicketStatus] = mapped_column(nullable=False)
    triggered_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
    )
    reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    job_ticket: Mapped[JobTicket] = relationship(
        "JobTicket", back_populates="transitions", lazy="noload"
    )

    __table_args__ = (Index("ix_job_ticket_transitions_ticket_id", "job_ticket_id"),)
