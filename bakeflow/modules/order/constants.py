"""Order status transitions and outbox event types."""

from __future__ import annotations

from bakeflow.models.enums import OrderStatus

# Valid transitions: from_status -> allowed to_statuses. COMPLETED and CANCELLED are terminal.
VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
}

# Statuses a manually entered order may start in
MANUAL_ENTRY_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Days ahead used when an intake carries no delivery date
DEFAULT_DELIVERY_LEAD_DAYS = 1

# Event type strings for the outbox
EVENT_ORDER_CREATED = "order.created"
EVENT_ORDER_STATUS_CHANGED = "order.status_changed"
