"""Booking model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from backend.database import Base


class Booking(Base):
    """A customer's reservation of one slot."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    customer_email = Column(String)
    customer_name = Column(String)
    status = Column(String, default="CONFIRMED")
    created_at = Column(DateTime, default=datetime.now)
