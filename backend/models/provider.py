"""Provider model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from backend.database import Base


class Provider(Base):
    """A service provider whose calendar holds availability windows."""
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True)
    name = Column(String)

    user = relationship("User", back_populates="provider")
