"""Job ticket state machine transitions and outbox event types."""

from __future__ import annotations

from bakeflow.models.enums import JobTicketPriority, JobTicketStatus, JobTicketTransitionType

# Valid transitions: from_status -> {transition_type -> to_status}
VALID_TRANSITIONS: dict[JobTicketStatus, dict[JobTicketTransitionType, JobTicketStatus]] = {
    JobTicketStatus.PENDING: {
        JobTicketTransitionType.CREATE: JobTicketStatus.IN_PROGRESS,
        JobTicketTransitionType.CANCEL: JobTicketStatus.CANCELLED,
    },
    JobTicketStatus.IN_PROGRESS: {
        JobTicketTransitionType.ADVANCE: JobTicketStatus.IN_PROGRESS,
        JobTicketTransitionType.ROLLBACK: JobTicketStatus.IN_PROGRESS,
        JobTicketTransitionType.COMPLETE: JobTicketStatus.COMPLETED,
        JobTicketTransitionType.CANCEL: JobTicketStatus.CANCELLED,
    },
    # COMPLETED and CANCELLED are terminal
}

TICKET_NUMBER_PREFIX = "JT"

# Priority -> multiplier on the workflow's estimated duration
DURATION_BUFFER_SETTING: dict[JobTicketPriority, str] = {
    JobTicketPriority.URGENT: "urgent_duration_buffer",
    JobTicketPriority.HIGH: "high_duration_buffer",
    JobTicketPriority.NORMAL: "normal_duration_buffer",
}

# Event type strings for the outbox
EVENT_JOB_TICKET_CREATED = "job_ticket.created"
EVENT_JOB_TICKET_COMPLETED = "job_ticket.completed"
EVENT_JOB_TICKET_CANCELLED = "job_ticket.cancelled"
EVENT_STEP_UNASSIGNED = "job_ticket.step_unassigned"
EVENT_INVOICE_REQUESTED = "invoice.generation_requested"
EVENT_INVENTORY_DEDUCTION_REQUESTED = "inventory.deduction_requested"
EVENT_PRODUCT_TRACKING_REQUESTED = "product_tracking.creation_requested"
