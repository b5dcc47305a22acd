from bakeflow.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
]
