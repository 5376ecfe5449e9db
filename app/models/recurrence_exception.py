from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class RecurrenceException(Base):
    """
    Overrides a single occurrence of an event: either cancels it
    (`is_deleted=True`) or moves it to `new_start_time`/`new_end_time`.
    """

    __tablename__ = "recurrence_exceptions"

    id = Column(Integer, primary_key=True, index=True)

    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Calendar day in the event's recurrence timeline.
    exception_date = Column(Date, nullable=False, index=True)

    is_deleted = Column(Boolean, nullable=False, default=True)

    new_start_time = Column(DateTime(timezone=True), nullable=True)
    new_end_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    event = relationship("Event", back_populates="exceptions")

    __table_args__ = (
        UniqueConstraint(
            "event_id",
            "exception_date",
            name="uq_recurrence_exceptions_event_date",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<RecurrenceException id={self.id} event_id={self.event_id} "
            f"date={self.exception_date} deleted={self.is_deleted}>"
        )
