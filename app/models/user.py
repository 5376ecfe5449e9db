from sqlalchemy import Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from app.db.base import Base


class User(Base):
    """
    Owner of calendar events. Only identity, name and email are tracked;
    authentication lives outside this service.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    events = relationship("Event", back_populates="user")

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
