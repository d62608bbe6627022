import os
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.availability import Availability, AvailabilityService  # noqa: E402
from backend.models.booking import Booking  # noqa: E402
from backend.models.provider import Provider  # noqa: E402
from backend.models.slot import Slot  # noqa: E402
from backend.models.slot_cancellation import SlotCancellation  # noqa: E402, F401
from backend.models.user import User  # noqa: E402
from backend.services.notifications import NotificationError  # noqa: E402
from backend.services.slots.types import AvailabilityStatus, SchedulingRule, SlotStatus  # noqa: E402


@pytest.fixture
def scheduling_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def provider_user(scheduling_db):
    user = User(email='provider@example.com', role='provider')
    user.provider = Provider(name='Dr. Example')
    scheduling_db.add(user)
    scheduling_db.commit()
    scheduling_db.refresh(user)
    return user


@pytest.fixture
def make_availability(scheduling_db, provider_user):
    def _make(
        start_time: datetime,
        end_time: datetime,
        status: AvailabilityStatus = AvailabilityStatus.ACCEPTED,
        scheduling_rule: SchedulingRule = SchedulingRule.CONTINUOUS,
        services=(('consult', 30, Decimal('50.00')),),
        series_id: str | None = None,
        provider_id: int | None = None,
    ) -> Availability:
        availability = Availability(
            provider_id=provider_id or provider_user.provider.id,
            start_time=start_time,
            end_time=end_time,
            scheduling_rule=scheduling_rule,
            status=status,
            series_id=series_id,
            is_recurring=series_id is not None,
            created_by_id=provider_user.id,
            services=[
                AvailabilityService(service_id=service_id, duration=duration, price=price)
                for service_id, duration, price in services
            ],
        )
        scheduling_db.add(availability)
        scheduling_db.commit()
        scheduling_db.refresh(availability)
        return availability

    return _make


@pytest.fixture
def make_slot(scheduling_db):
    def _make(
        availability: Availability,
        start_time: datetime,
        end_time: datetime,
        booked: bool = False,
        status: SlotStatus = SlotStatus.AVAILABLE,
    ) -> Slot:
        booking = None
        if booked:
            booking = Booking(customer_email='customer@example.com', customer_name='Customer')
            scheduling_db.add(booking)
            scheduling_db.flush()

        slot = Slot(
            availability_id=availability.id,
            service_id='consult',
            start_time=start_time,
            end_time=end_time,
            duration=int((end_time - start_time).total_seconds() // 60),
            price=Decimal('50.00'),
            status=status,
            booking_id=booking.id if booking else None,
        )
        scheduling_db.add(slot)
        scheduling_db.commit()
        scheduling_db.refresh(slot)
        return slot

    return _make


class RecordingNotifier:
    """Notifier double that records calls and can be told to fail."""

    def __init__(self, fail_customers: bool = False, error: str | None = None):
        self.fail_customers = fail_customers
        self.error = error
        self.customer_notifications: list[int] = []
        self.events: list[tuple[str, int]] = []

    def notify_customer(self, booking, slot) -> bool:
        if self.error:
            raise NotificationError(self.error)
        if self.fail_customers:
            return False
        self.customer_notifications.append(booking.id)
        return True

    def notify_availability_proposed(self, availability, proposed_by) -> None:
        self.events.append(('proposed', availability.id))

    def notify_availability_accepted(self, availability) -> None:
        self.events.append(('accepted', availability.id))

    def notify_availability_rejected(self, availability, reason) -> None:
        self.events.append(('rejected', availability.id))

    def notify_availability_cancelled(self, availability, reason) -> None:
        self.events.append(('cancelled', availability.id))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_notifier():
    return RecordingNotifier
