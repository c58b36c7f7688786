from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from .database import Base


class Appointment(Base):
    """One occupied half-hour slot. Blank names are never stored."""

    __tablename__ = "appointments"
    __table_args__ = (UniqueConstraint("day", "time", name="uq_appointments_day_time"),)

    # Autoincrement id doubles as the recency order used when folding duplicates
    id = Column(Integer, primary_key=True, autoincrement=True)
    day = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
