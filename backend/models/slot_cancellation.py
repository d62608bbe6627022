"""Slot cancellation audit records."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from backend.database import Base


class SlotCancellation(Base):
    """Written when a booked slot is blocked because its availability went away."""
    __tablename__ = "slot_cancellations"

    id = Column(Integer, primary_key=True)
    slot_id = Column(Integer, ForeignKey("slots.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    availability_id = Column(Integer, nullable=False)
    reason = Column(String)
    created_at = Column(DateTime, default=datetime.now)
