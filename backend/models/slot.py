"""Slot model definitions."""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from backend.database import Base
from backend.services.slots.types import SlotStatus


class Slot(Base):
    """One bookable, service-specific unit derived from an availability window."""
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True)
    availability_id = Column(Integer, ForeignKey("availability.id"), nullable=False, index=True)
    service_id = Column(String, nullable=False)
    service_config_id = Column(Integer, ForeignKey("availability_services.id", ondelete="SET NULL"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(Enum(SlotStatus, name="slot_status"), nullable=False, default=SlotStatus.AVAILABLE)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, unique=True)
    last_calculated = Column(DateTime)

    availability = relationship("Availability", back_populates="slots")
    booking = relationship("Booking")

    @property
    def is_booked(self) -> bool:
        return self.booking_id is not None
