from __future__ import annotations

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.enums import Department, StaffRole, UserStatus


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Production staff member who can be assigned job ticket steps."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True)
    phone: Mapped[str | None] = mapped_column(String(30))
    role: Mapped[StaffRole] = mapped_column(
        nullable=False, default=StaffRole.STAFF, server_default="STAFF"
    )
    department: Mapped[Department | None] = mapped_column()
    status: Mapped[UserStatus] = mapped_column(
        nullable=False, default=UserStatus.ACTIVE, server_default="ACTIVE"
    )

    __table_args__ = (
        Index("ix_users_role_department", "role", "department"),
        Index("ix_users_status", "status"),
    )
