"""Waste tracking status rules and outbox event names."""

from bakeflow.models.enums import TrackingStatus, WasteCollectionStatus

# Tracking rows still carrying sellable stock
OPEN_TRACKING_STATUSES = (TrackingStatus.FRESH, TrackingStatus.WARNING)

# A collection in one of these states blocks scheduling another
OPEN_COLLECTION_STATUSES = (
    WasteCollectionStatus.SCHEDULED,
    WasteCollectionStatus.IN_PROGRESS,
)

CONDITION_EXPIRED = "expired"

EVENT_WASTE_CREDIT_NOTE = "waste_collection.credit_note_requested"
EVENT_WASTE_COLLECTION_SCHEDULED = "waste_collection.scheduled"
