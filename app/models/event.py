from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.db.base import Base


class Event(Base):
    """
    A base calendar event. Recurring events are stored once and expanded into
    occurrences on every query; nothing derived is persisted.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Stored normalized to UTC.
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    color = Column(String(32), nullable=False, default="blue")
    event_type = Column(String(32), nullable=False, default="Work")

    # Timezone of the recurrence timeline (zone name or UTC offset).
    timezone = Column(String(64), nullable=False, default="UTC")

    recurrence_pattern = Column(String(16), nullable=False, default="None")
    # Comma-separated weekday indices, Sunday=0 (e.g. "1,3,5").
    recurrence_days = Column(String(32), nullable=False, default="")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    user = relationship("User", back_populates="events", lazy="selectin")
    exceptions = relationship(
        "RecurrenceException",
        back_populates="event",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="RecurrenceException.exception_date",
    )

    __table_args__ = (
        Index("ix_events_start_end", "start_time", "end_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event id={self.id} user_id={self.user_id} "
            f"start={self.start_time} pattern={self.recurrence_pattern}>"
        )
