from enum import IntEnum

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class UrlStatus(IntEnum):
    """Stored as an integer; anything but ENABLED is never redirected"""
    ENABLED = 0
    DISABLED = 1


class ShortURL(Base):
    """
    Short code -> destination mapping.

    short_code is unique at the database level; the allocator's existence
    check only avoids most collisions, the constraint settles races.
    """
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # Note: unique=True automatically creates an index
    short_code = Column(String(16), unique=True, nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Integer, nullable=False, default=UrlStatus.ENABLED, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    histories = relationship(
        "AccessHistory",
        back_populates="url",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<ShortURL(id={self.id}, short_code='{self.short_code}', status={self.status})>"
