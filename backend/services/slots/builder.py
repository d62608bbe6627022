"""
Slot record builder.

Shapes rule-engine output into slot rows ready to be inserted. Nothing here
touches the database; callers persist ``SlotDataResult.slot_records``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable

from .rules import generate_time_slots
from .types import SchedulingRule, ServiceOffering, SlotCreateData, SlotDataResult, SlotStatus


def generate_slot_data_for_availability(
    availability_id: int,
    start_time: datetime,
    end_time: datetime,
    scheduling_rule: SchedulingRule | str,
    services: Iterable[ServiceOffering],
    scheduling_interval: int | None = None,
    provider_id: int | None = None,
    organization_id: str | None = None,
    location_id: str | None = None,
    generated_at: datetime | None = None,
) -> SlotDataResult:
    """
    Build slot records for every service offered in one window.

    Each service runs through the rule engine on its own, so services with
    different durations get different cadences. A service whose generation
    fails contributes its errors and no records; the others still produce.
    """
    generated_at = generated_at or datetime.now()
    result = SlotDataResult()

    for service in services:
        slot_result = generate_time_slots(
            start_time,
            end_time,
            service.duration,
            scheduling_rule,
            scheduling_interval,
        )

        if slot_result.errors:
            result.errors.extend(f'Service {service.service_id}: {error}' for error in slot_result.errors)
            continue

        result.slot_records.extend(
            SlotCreateData(
                availability_id=availability_id,
                service_id=service.service_id,
                service_config_id=service.service_config_id,
                provider_id=provider_id,
                organization_id=organization_id,
                location_id=location_id,
                start_time=slot.start_time,
                end_time=slot.end_time,
                duration=slot.duration,
                price=service.price,
                status=SlotStatus.AVAILABLE,
                last_calculated=generated_at,
            )
            for slot in slot_result.slots
        )

    return result


def offerings_for(availability) -> list[ServiceOffering]:
    """Service offerings of a stored window, keyed to their config rows."""
    return [
        ServiceOffering(
            service_id=service.service_id,
            duration=service.duration,
            price=Decimal(str(service.price)),
            service_config_id=service.id,
        )
        for service in availability.services
    ]


def generate_slot_data_from_availability(availability, generated_at: datetime | None = None) -> SlotDataResult:
    return generate_slot_data_for_availability(
        availability_id=availability.id,
        start_time=availability.start_time,
        end_time=availability.end_time,
        scheduling_rule=availability.scheduling_rule,
        services=offerings_for(availability),
        scheduling_interval=availability.scheduling_interval,
        provider_id=availability.provider_id,
        organization_id=availability.organization_id,
        location_id=availability.location_id,
        generated_at=generated_at,
    )


def generate_slot_data_for_multiple_availability(
    availabilities: Iterable,
    generated_at: datetime | None = None,
) -> SlotDataResult:
    generated_at = generated_at or datetime.now()
    combined = SlotDataResult()

    for availability in availabilities:
        result = generate_slot_data_from_availability(availability, generated_at=generated_at)
        combined.slot_records.extend(result.slot_records)
        combined.errors.extend(result.errors)

    return combined
