import enum


class MerchantStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    VIP = "VIP"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class StaffRole(str, enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    BAKER = "BAKER"
    DECORATOR = "DECORATOR"
    QUALITY_INSPECTOR = "QUALITY_INSPECTOR"
    PACKER = "PACKER"
    DRIVER = "DRIVER"
    STAFF = "STAFF"


class Department(str, enum.Enum):
    MANAGEMENT = "MANAGEMENT"
    PRODUCTION = "PRODUCTION"
    KITCHEN = "KITCHEN"
    DECORATING = "DECORATING"
    QUALITY_CONTROL = "QUALITY_CONTROL"
    PACKAGING = "PACKAGING"
    INVENTORY = "INVENTORY"
    DELIVERY = "DELIVERY"


# ── Orders & production ───────────────────────────────────────────────────


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class WorkflowType(str, enum.Enum):
    STANDARD = "STANDARD"
    RUSH = "RUSH"
    CUSTOM = "CUSTOM"
    CAKES = "CAKES"
    CUPCAKES = "CUPCAKES"
    COOKIES = "COOKIES"
    PASTRIES = "PASTRIES"


class JobTicketStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class JobTicketPriority(str, enum.Enum):
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class StepStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class JobTicketTransitionType(str, enum.Enum):
    CREATE = "CREATE"
    ADVANCE = "ADVANCE"
    ROLLBACK = "ROLLBACK"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"


class ProgressOutcome(str, enum.Enum):
    PROGRESSED = "PROGRESSED"
    QUALITY_FAILURE = "QUALITY_FAILURE"
    COMPLETED = "COMPLETED"


# ── Pricing, stock tracking & waste ───────────────────────────────────────


class PriceTier(str, enum.Enum):
    STANDARD = "STANDARD"
    VOLUME = "VOLUME"
    PREMIUM = "PREMIUM"


class TrackingStatus(str, enum.Enum):
    FRESH = "FRESH"
    WARNING = "WARNING"
    EXPIRED = "EXPIRED"
    SOLD_OUT = "SOLD_OUT"
    COLLECTED = "COLLECTED"


class WasteCollectionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
