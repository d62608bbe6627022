"""Availability model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from backend.database import Base
from backend.services.slots.types import AvailabilityStatus, BillingEntity, SchedulingRule


class Availability(Base):
    """A provider's declared block of bookable time."""
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    organization_id = Column(String, nullable=True)
    location_id = Column(String, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    scheduling_rule = Column(Enum(SchedulingRule, name="scheduling_rule"), nullable=False,
                             default=SchedulingRule.CONTINUOUS)
    scheduling_interval = Column(Integer, nullable=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(JSON, nullable=True)
    series_id = Column(String(36), nullable=True, index=True)
    status = Column(Enum(AvailabilityStatus, name="availability_status"), nullable=False,
                    default=AvailabilityStatus.PENDING)
    billing_entity = Column(Enum(BillingEntity, name="billing_entity"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    rejection_reason = Column(String, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    services = relationship(
        "AvailabilityService",
        back_populates="availability",
        cascade="all, delete-orphan",
        order_by="AvailabilityService.id",
    )
    slots = relationship("Slot", back_populates="availability", passive_deletes="all")


class AvailabilityService(Base):
    """A service offered inside an availability window, with its duration and price."""
    __tablename__ = "availability_services"

    id = Column(Integer, primary_key=True)
    availability_id = Column(Integer, ForeignKey("availability.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(String, nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)

    availability = relationship("Availability", back_populates="services")
