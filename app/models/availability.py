from sqlalchemy import Column, String, Integer, Boolean, Time, Date, DateTime, Index
from sqlalchemy.sql import func
from app.models.base import Base


class WeeklyHours(Base):
    """Recurring weekly opening hours, one row per day of week"""
    __tablename__ = "weekly_hours"

    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer, nullable=False, unique=True)  # 0=Monday, 6=Sunday
    is_open = Column(Boolean, nullable=False, default=False)
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    slot_duration_minutes = Column(Integer, nullable=False, default=60)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<WeeklyHours(day={self.day_of_week}, open={self.is_open})>"


class DateOverride(Base):
    """Specific date overrides (holidays, closures, special hours)"""
    __tablename__ = "date_overrides"

    id = Column(Integer, primary_key=True)

    date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # NULL = single day
    is_closed = Column(Boolean, nullable=False, default=True)
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    reason = Column(String(255), nullable=True)  # "Feestdag", "Vakantie", etc.

    show_on_website = Column(Boolean, nullable=False, default=False)
    is_recurring = Column(Boolean, nullable=False, default=False)  # yearly, month/day match

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_date_overrides_date", "date"),
    )

    def __repr__(self):
        return f"<DateOverride(id={self.id}, date={self.date}, closed={self.is_closed})>"
