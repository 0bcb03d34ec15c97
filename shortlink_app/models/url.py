from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from shortlink_app.database.connection import Base


class ShortUrl(Base):
    """
    Short URL mapping (system of record).
    
    The unique constraint on short_code is the single point where concurrent
    reservations of the same code are serialized: whoever inserts first wins,
    every other insert fails with an IntegrityError.
    
    Expiry is logical only: rows past expires_at stay in the table and are
    filtered out when resolved.
    """
    __tablename__ = "short_urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # Note: unique=True automatically creates an index in SQLAlchemy
    short_code = Column(String(32), unique=True, nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=True)
    click_count = Column(Integer, nullable=False, default=0)  # Owned by the store, never cached
