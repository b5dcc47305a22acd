"""Workflow model: administrator-authored production step templates."""

from __future__ import annotations

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import WorkflowType


class Workflow(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "workflows"

    workflow_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Ordered list of {step_name, assigned_role, required_department, step_type}
    workflow_steps: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    estimated_total_duration_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0"
    )
    workflow_type: Mapped[WorkflowType] = mapped_column(nullable=False)
    active_status: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    __table_args__ = (Index("ix_workflows_type_active", "workflow_type", "active_status"),)

    @property
    def total_steps(self) -> int:
        return len(self.workflow_steps or [])

    def get_step(self, step_number: int) -> dict | None:
        steps = self.workflow_steps or []
        if 1 <= step_number <= len(steps):
            return steps[step_number - 1]
        return None
