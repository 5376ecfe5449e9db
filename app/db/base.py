from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the calendar service.
    """
    pass


# Import ORM models so that Base.metadata is aware of them
# This import should stay at the bottom to avoid circular dependencies.
import app.models.user  # noqa: E402,F401
import app.models.event  # noqa: E402,F401
import app.models.recurrence_exception  # noqa: E402,F401
