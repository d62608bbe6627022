"""Value types shared by the slot rule engine, builder, validator and cleanup service."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SchedulingRule(str, Enum):
    CONTINUOUS = 'CONTINUOUS'
    ON_THE_HOUR = 'ON_THE_HOUR'
    ON_THE_HALF_HOUR = 'ON_THE_HALF_HOUR'


class AvailabilityStatus(str, Enum):
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    REJECTED = 'REJECTED'
    CANCELLED = 'CANCELLED'


class SlotStatus(str, Enum):
    AVAILABLE = 'AVAILABLE'
    BLOCKED = 'BLOCKED'
    INVALID = 'INVALID'


class BillingEntity(str, Enum):
    PROVIDER = 'PROVIDER'
    ORGANIZATION = 'ORGANIZATION'


class CleanupScope(str, Enum):
    ALL = 'all'
    FUTURE_ONLY = 'future_only'
    CANCELLED_ONLY = 'cancelled_only'


class SeriesScope(str, Enum):
    SINGLE = 'single'
    FUTURE = 'future'
    ALL = 'all'


# Windows in these states block other windows of the same provider.
BLOCKING_STATUSES = (AvailabilityStatus.ACCEPTED, AvailabilityStatus.PENDING)

# Changing any of these invalidates previously generated slots.
DESTRUCTIVE_FIELDS = frozenset({'start_time', 'end_time', 'scheduling_rule', 'scheduling_interval', 'status'})


@dataclass(frozen=True)
class TimeSlot:
    start_time: datetime
    end_time: datetime
    duration: int


@dataclass
class TimeSlotGenerationResult:
    slots: list[TimeSlot] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_slots(self) -> int:
        return len(self.slots)


@dataclass(frozen=True)
class ServiceOffering:
    """One service offered inside an availability window."""

    service_id: str
    duration: int
    price: Decimal
    service_config_id: int | None = None


@dataclass
class SlotCreateData:
    availability_id: int
    service_id: str
    service_config_id: int | None
    start_time: datetime
    end_time: datetime
    duration: int
    price: Decimal
    last_calculated: datetime
    provider_id: int | None = None
    organization_id: str | None = None
    location_id: str | None = None
    status: SlotStatus = SlotStatus.AVAILABLE


@dataclass
class SlotDataResult:
    slot_records: list[SlotCreateData] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_slots(self) -> int:
        return len(self.slot_records)


@dataclass(frozen=True)
class TimeRange:
    start_time: datetime
    end_time: datetime


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class UpdateEligibility:
    can_update: bool
    reason: str | None = None
    booked_slots_count: int = 0


@dataclass
class SlotGenerationResult:
    availability_id: int
    slots_generated: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class CleanupResult:
    total_slots_processed: int = 0
    slots_deleted: int = 0
    slots_marked_unavailable: int = 0
    bookings_affected: int = 0
    customers_notified: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    processing_time_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.errors

    def merge(self, other: 'CleanupResult') -> None:
        self.total_slots_processed += other.total_slots_processed
        self.slots_deleted += other.slots_deleted
        self.slots_marked_unavailable += other.slots_marked_unavailable
        self.bookings_affected += other.bookings_affected
        self.customers_notified += other.customers_notified
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.processing_time_ms += other.processing_time_ms


@dataclass
class SeriesCleanupResult(CleanupResult):
    series_id: str = ''
    availabilities_processed: int = 0
    availabilities_deleted: int = 0
