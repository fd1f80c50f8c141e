from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class AccessHistory(Base):
    """
    One visit to a short URL, written after the redirect was sent.

    short_code is copied from the parent so the row stays readable on its
    own. Rows are never updated; they go away with their ShortURL.
    """
    __tablename__ = "histories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    url_id = Column(Integer, ForeignKey("urls.id", ondelete="CASCADE"), nullable=False, index=True)
    short_code = Column(String(16), nullable=False, index=True)

    # Request metadata
    ip_address = Column(String(64), nullable=False)
    user_agent = Column(Text, nullable=True)
    referer = Column(Text, nullable=True)

    # GeoIP enrichment
    country = Column(String(64), nullable=True)
    region = Column(String(64), nullable=True)
    province = Column(String(64), nullable=True)
    city = Column(String(64), nullable=True)
    isp = Column(String(64), nullable=True)

    # User agent classification
    device_type = Column(String(16), nullable=True)
    os = Column(String(32), nullable=True)
    browser = Column(String(32), nullable=True)

    accessed_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    url = relationship("ShortURL", back_populates="histories")
