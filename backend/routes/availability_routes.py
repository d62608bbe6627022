import logging
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, is_admin, require_admin
from backend.core import config
from backend.database import SessionLocal, ensure_scheduling_schema
from backend.models.availability import Availability, AvailabilityService
from backend.models.provider import Provider
from backend.models.user import User
from backend.services.notifications import NotificationError, Notifier, get_notifier
from backend.services.slots import queries
from backend.services.slots.cleanup import CleanupOptions, SlotCleanupService
from backend.services.slots.generator import (
    generate_slots_for_availability,
    generate_slots_for_multiple_availability,
    regenerate_slots_for_availability,
)
from backend.services.slots.recurrence import (
    CUSTOM,
    RECURRENCE_OPTIONS,
    generate_recurring_instances,
    is_valid_recurrence_pattern,
)
from backend.services.slots.types import (
    AvailabilityStatus,
    BillingEntity,
    CleanupResult,
    CleanupScope,
    SchedulingRule,
    SeriesScope,
    SlotStatus,
    ValidationResult,
)
from backend.services.slots.validation import (
    can_update_availability,
    get_validation_constraints,
    validate_availability,
    validate_availability_update,
    validate_recurring_availability,
)

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'
PROPOSER_ROLES = {'organization'}
SLOT_AFFECTING_FIELDS = {
    'start_time',
    'end_time',
    'scheduling_rule',
    'scheduling_interval',
    'is_recurring',
    'recurrence_pattern',
    'services',
}


class ServiceOfferingRequest(BaseModel):
    service_id: str
    duration: int
    price: Decimal = Decimal('0')

    @field_validator('service_id')
    @classmethod
    def validate_service_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service id is required.')
        return normalized

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Service duration must be positive.')
        return value

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError('Service price cannot be negative.')
        return value


class RecurrencePatternRequest(BaseModel):
    option: str
    custom_days: list[int] | None = None
    end_date: date | None = None

    @field_validator('option')
    @classmethod
    def validate_option(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in RECURRENCE_OPTIONS:
            raise ValueError('Invalid recurrence option.')
        return normalized

    @field_validator('custom_days')
    @classmethod
    def validate_custom_days(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        if any(day < 0 or day > 6 for day in value):
            raise ValueError('Custom days must be weekday numbers from 0 (Monday) to 6 (Sunday).')
        return sorted(set(value))

    def as_pattern(self) -> dict:
        return {
            'option': self.option,
            'custom_days': self.custom_days if self.option == CUSTOM else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
        }


class CreateAvailabilityRequest(BaseModel):
    provider_id: int
    organization_id: str | None = None
    location_id: str | None = None
    start_time: datetime
    end_time: datetime
    scheduling_rule: SchedulingRule = SchedulingRule.CONTINUOUS
    scheduling_interval: int | None = None
    is_recurring: bool = False
    recurrence_pattern: RecurrencePatternRequest | None = None
    series_id: str | None = None
    billing_entity: BillingEntity | None = None
    services: list[ServiceOfferingRequest]

    @field_validator('services')
    @classmethod
    def validate_services(cls, value: list[ServiceOfferingRequest]) -> list[ServiceOfferingRequest]:
        if not value:
            raise ValueError('At least one service is required.')
        return value


class UpdateAvailabilityRequest(BaseModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    scheduling_rule: SchedulingRule | None = None
    scheduling_interval: int | None = None
    is_recurring: bool | None = None
    recurrence_pattern: RecurrencePatternRequest | None = None
    billing_entity: BillingEntity | None = None
    services: list[ServiceOfferingRequest] | None = None


class CancelAvailabilityRequest(BaseModel):
    reason: str | None = None
    scope: SeriesScope | None = None


class RejectAvailabilityRequest(BaseModel):
    reason: str | None = None


class AvailabilityServiceResponse(BaseModel):
    id: int
    service_id: str
    duration: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    id: int
    provider_id: int
    organization_id: str | None = None
    location_id: str | None = None
    start_time: datetime
    end_time: datetime
    scheduling_rule: SchedulingRule
    scheduling_interval: int | None = None
    is_recurring: bool
    recurrence_pattern: dict | None = None
    series_id: str | None = None
    status: AvailabilityStatus
    billing_entity: BillingEntity | None = None
    services: list[AvailabilityServiceResponse]

    model_config = ConfigDict(from_attributes=True)


class CreateAvailabilityResponse(BaseModel):
    availability: AvailabilityResponse
    instances_created: int
    slots_generated: int
    slot_errors: list[str]


class AcceptAvailabilityResponse(BaseModel):
    availability: AvailabilityResponse
    slots_generated: int
    slot_errors: list[str]


class SlotResponse(BaseModel):
    id: int
    availability_id: int
    service_id: str
    start_time: datetime
    end_time: datetime
    duration: int
    price: Decimal
    status: SlotStatus
    booking_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


class UpdateEligibilityResponse(BaseModel):
    can_update: bool
    reason: str | None = None
    booked_slots_count: int


class SlotGenerationResponse(BaseModel):
    availability_id: int
    slots_generated: int
    errors: list[str]


class CleanupResponse(BaseModel):
    total_slots_processed: int
    slots_deleted: int
    slots_marked_unavailable: int
    bookings_affected: int
    customers_notified: int
    errors: list[str]
    warnings: list[str]
    processing_time_ms: int
    series_id: str | None = None
    availabilities_processed: int | None = None
    availabilities_deleted: int | None = None


class CancelAvailabilityResponse(BaseModel):
    cancelled_ids: list[int]
    cleanup: CleanupResponse


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_now() -> datetime:
    return datetime.now()


def build_cleanup_service(db: Session, notifier: Notifier) -> SlotCleanupService:
    return SlotCleanupService(db, CleanupOptions.from_config(), notifier)


def acting_provider_id(user: User) -> int | None:
    provider = user.provider
    return provider.id if provider else None


def can_manage_availability(user: User, availability: Availability) -> bool:
    return (
        acting_provider_id(user) == availability.provider_id
        or user.id == availability.created_by_id
        or is_admin(user)
    )


def get_availability_or_404(db: Session, availability_id: int) -> Availability:
    availability = queries.get_window(db, availability_id)
    if availability is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Availability not found.',
        )
    return availability


def get_managed_availability(db: Session, availability_id: int, current_user: User) -> Availability:
    availability = get_availability_or_404(db, availability_id)
    if not can_manage_availability(current_user, availability):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Access denied.',
        )
    return availability


def raise_for_validation(result: ValidationResult) -> None:
    if not result.is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={'validation_errors': result.errors},
        )


def to_cleanup_response(result: CleanupResult) -> CleanupResponse:
    return CleanupResponse(**asdict(result))


def build_service_rows(services: list[ServiceOfferingRequest]) -> list[AvailabilityService]:
    return [
        AvailabilityService(service_id=service.service_id, duration=service.duration, price=service.price)
        for service in services
    ]


@router.get('/validation-constraints')
def read_validation_constraints():
    return get_validation_constraints()


@router.post('/slots/cleanup-orphaned', response_model=CleanupResponse)
def cleanup_orphaned_slots(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    ensure_database_ready()

    result = build_cleanup_service(db, notifier).cleanup_orphaned_slots()
    return to_cleanup_response(result)


@router.post('/series/{series_id}/cleanup', response_model=CleanupResponse)
def cleanup_series_slots(
    series_id: str,
    scope: CleanupScope = Query(default=CleanupScope.ALL),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        series_window = db.query(Availability).filter(Availability.series_id == series_id).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if series_window is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Availability series not found.',
        )

    if not can_manage_availability(current_user, series_window):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Access denied.',
        )

    result = build_cleanup_service(db, notifier).cleanup_recurring_series_slots(series_id, scope, now=now)
    return to_cleanup_response(result)


@router.post('', response_model=CreateAvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(
    data: CreateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    now: datetime = Depends(get_now),
):
    is_provider_created = acting_provider_id(current_user) == data.provider_id
    role = (current_user.role or '').strip().lower()

    if not is_provider_created and not is_admin(current_user) and role not in PROPOSER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Can only create availability for your own provider account.',
        )

    pattern = None
    if data.is_recurring and data.recurrence_pattern:
        pattern = data.recurrence_pattern.as_pattern()

        if data.recurrence_pattern.end_date and data.recurrence_pattern.end_date <= data.start_time.date():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Recurrence end date must be after start date.',
            )

        if not is_valid_recurrence_pattern(pattern):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Custom recurrence requires at least one day to be selected.',
            )

    ensure_database_ready()

    try:
        provider = db.query(Provider).filter(Provider.id == data.provider_id).first()
        if provider is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Provider not found.',
            )

        instances = generate_recurring_instances(
            pattern,
            data.start_time,
            data.end_time,
            config.MAX_RECURRING_INSTANCES,
        )

        if len(instances) > 1:
            validation = validate_recurring_availability(db, data.provider_id, instances, now=now)
        else:
            validation = validate_availability(db, data.provider_id, data.start_time, data.end_time, now=now)
        raise_for_validation(validation)

        initial_status = AvailabilityStatus.ACCEPTED if is_provider_created else AvailabilityStatus.PENDING
        billing_entity = data.billing_entity or (
            BillingEntity.PROVIDER if is_provider_created else BillingEntity.ORGANIZATION
        )
        series_id = (data.series_id or str(uuid4())) if data.is_recurring else None

        availabilities = [
            Availability(
                provider_id=data.provider_id,
                organization_id=data.organization_id,
                location_id=data.location_id,
                start_time=instance.start_time,
                end_time=instance.end_time,
                scheduling_rule=data.scheduling_rule,
                scheduling_interval=data.scheduling_interval,
                is_recurring=data.is_recurring,
                recurrence_pattern=pattern,
                series_id=series_id,
                status=initial_status,
                billing_entity=billing_entity,
                created_by_id=current_user.id,
                accepted_at=now if is_provider_created else None,
                services=build_service_rows(data.services),
            )
            for instance in instances
        ]
        db.add_all(availabilities)
        db.flush()

        slots_generated = 0
        slot_errors: list[str] = []
        if initial_status == AvailabilityStatus.ACCEPTED:
            slot_result = generate_slots_for_multiple_availability(db, availabilities, generated_at=now)
            slots_generated = slot_result.slots_generated
            slot_errors = slot_result.errors

        db.commit()
        availability = availabilities[0]
        db.refresh(availability)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if initial_status == AvailabilityStatus.PENDING:
        try:
            notifier.notify_availability_proposed(availability, current_user)
        except NotificationError:
            logger.exception('Failed to send proposal notification for availability %s', availability.id)

    return CreateAvailabilityResponse(
        availability=AvailabilityResponse.model_validate(availability),
        instances_created=len(availabilities),
        slots_generated=slots_generated,
        slot_errors=slot_errors,
    )


@router.get('/{availability_id}', response_model=AvailabilityResponse)
def get_availability(
    availability_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = get_managed_availability(db, availability_id, current_user)
        return AvailabilityResponse.model_validate(availability)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{availability_id}/slots', response_model=list[SlotResponse])
def list_availability_slots(
    availability_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_managed_availability(db, availability_id, current_user)
        return [SlotResponse.model_validate(slot) for slot in queries.find_slots(db, availability_id)]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{availability_id}/update-eligibility', response_model=UpdateEligibilityResponse)
def get_update_eligibility(
    availability_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_managed_availability(db, availability_id, current_user)
        eligibility = can_update_availability(db, availability_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return UpdateEligibilityResponse(
        can_update=eligibility.can_update,
        reason=eligibility.reason,
        booked_slots_count=eligibility.booked_slots_count,
    )


@router.patch('/{availability_id}', response_model=AvailabilityResponse)
def update_availability(
    availability_id: int,
    data: UpdateAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    changes = data.model_dump(exclude_unset=True)
    modified_fields = set(changes)

    try:
        availability = get_managed_availability(db, availability_id, current_user)

        if modified_fields & SLOT_AFFECTING_FIELDS:
            eligibility = can_update_availability(db, availability_id)
            if not eligibility.can_update:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=eligibility.reason,
                )

        if 'start_time' in changes or 'end_time' in changes:
            raise_for_validation(
                validate_availability_update(
                    db,
                    availability_id,
                    availability.provider_id,
                    data.start_time or availability.start_time,
                    data.end_time or availability.end_time,
                    now=now,
                )
            )

        for field_name in ('start_time', 'end_time', 'scheduling_rule', 'billing_entity'):
            if changes.get(field_name) is not None:
                setattr(availability, field_name, getattr(data, field_name))
        # An explicit null clears the custom interval.
        if 'scheduling_interval' in changes:
            availability.scheduling_interval = data.scheduling_interval
        if data.is_recurring is not None:
            availability.is_recurring = data.is_recurring
        if 'recurrence_pattern' in changes:
            availability.recurrence_pattern = data.recurrence_pattern.as_pattern() if data.recurrence_pattern else None
        if data.services is not None:
            availability.services = build_service_rows(data.services)
        db.flush()

        if availability.status == AvailabilityStatus.ACCEPTED and modified_fields & SLOT_AFFECTING_FIELDS:
            cleanup = build_cleanup_service(db, notifier).cleanup_modified_availability_slots(
                availability_id,
                modified_fields,
            )
            if not cleanup.success:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail={'cleanup_errors': cleanup.errors},
                )

            slot_result = regenerate_slots_for_availability(db, availability_id)
            if slot_result.errors:
                logger.error('Slot regeneration for availability %s reported: %s', availability_id, slot_result.errors)

        db.commit()
        db.refresh(availability)
        return AvailabilityResponse.model_validate(availability)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/{availability_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    availability_id: int,
    scope: SeriesScope | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = get_managed_availability(db, availability_id, current_user)
        availabilities = queries.find_windows_for_scope(db, availability, scope)
        availability_ids = [window.id for window in availabilities]

        if queries.count_booked_slots(db, availability_ids):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Cannot delete availability with existing bookings. Cancel the availability instead.',
            )

        queries.delete_window_slots(db, availability_ids)
        for window in availabilities:
            db.delete(window)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.post('/{availability_id}/cancel', response_model=CancelAvailabilityResponse)
def cancel_availability(
    availability_id: int,
    data: CancelAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        availability = get_managed_availability(db, availability_id, current_user)
        if availability.status == AvailabilityStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Availability is already cancelled.',
            )

        availabilities = [
            window for window in queries.find_windows_for_scope(db, availability, data.scope)
            if window.status != AvailabilityStatus.CANCELLED
        ]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    service = build_cleanup_service(db, notifier)
    totals = CleanupResult()
    cancelled_ids: list[int] = []

    # Each window's status change commits together with its own slot cleanup.
    for window in availabilities:
        window.status = AvailabilityStatus.CANCELLED
        window.cancellation_reason = data.reason
        result = service.cleanup_availability_slots(window.id)
        totals.merge(result)

        if not result.success:
            continue

        cancelled_ids.append(window.id)
        try:
            notifier.notify_availability_cancelled(window, data.reason)
        except NotificationError:
            logger.exception('Failed to send cancellation notification for availability %s', window.id)

    if not cancelled_ids and totals.errors:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={'cleanup_errors': totals.errors},
        )

    return CancelAvailabilityResponse(cancelled_ids=cancelled_ids, cleanup=to_cleanup_response(totals))


@router.post('/{availability_id}/accept', response_model=AcceptAvailabilityResponse)
def accept_availability_proposal(
    availability_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        availability = get_availability_or_404(db, availability_id)

        if acting_provider_id(current_user) != availability.provider_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the assigned provider can accept this proposal.',
            )

        if availability.status != AvailabilityStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Availability is not pending acceptance.',
            )

        availability.status = AvailabilityStatus.ACCEPTED
        availability.accepted_at = now
        db.flush()

        slot_result = generate_slots_for_availability(db, availability_id, generated_at=now)
        if slot_result.errors:
            logger.error('Slot generation during acceptance of %s reported: %s', availability_id, slot_result.errors)

        db.commit()
        db.refresh(availability)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    try:
        notifier.notify_availability_accepted(availability)
    except NotificationError:
        logger.exception('Failed to send acceptance notification for availability %s', availability_id)

    return AcceptAvailabilityResponse(
        availability=AvailabilityResponse.model_validate(availability),
        slots_generated=slot_result.slots_generated,
        slot_errors=slot_result.errors,
    )


@router.post('/{availability_id}/reject', response_model=AvailabilityResponse)
def reject_availability_proposal(
    availability_id: int,
    data: RejectAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        availability = get_availability_or_404(db, availability_id)

        if acting_provider_id(current_user) != availability.provider_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the assigned provider can reject this proposal.',
            )

        if availability.status != AvailabilityStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Availability is not pending acceptance.',
            )

        availability.status = AvailabilityStatus.REJECTED
        availability.rejection_reason = data.reason
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    cleanup = build_cleanup_service(db, notifier).cleanup_availability_slots(availability_id)
    if not cleanup.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={'cleanup_errors': cleanup.errors},
        )

    db.refresh(availability)
    try:
        notifier.notify_availability_rejected(availability, data.reason)
    except NotificationError:
        logger.exception('Failed to send rejection notification for availability %s', availability_id)

    return AvailabilityResponse.model_validate(availability)


@router.post('/{availability_id}/slots/regenerate', response_model=SlotGenerationResponse)
def regenerate_availability_slots(
    availability_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_managed_availability(db, availability_id, current_user)
        result = regenerate_slots_for_availability(db, availability_id)

        if result.errors and not result.slots_generated:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={'slot_errors': result.errors},
            )

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return SlotGenerationResponse(
        availability_id=result.availability_id,
        slots_generated=result.slots_generated,
        errors=result.errors,
    )
