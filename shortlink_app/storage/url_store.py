"""
Durable store for short URL records.

The relational database is the system of record and the only place where
short code uniqueness is enforced. Nothing here retries: a failure is
surfaced to the request as it happened.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.exceptions import ConflictError, StoreError
from shortlink_app.models.url import ShortUrl

logger = logging.getLogger(__name__)


class UrlStore(ABC):
    """Read/write/delete contract of the durable store"""
    
    @abstractmethod
    def add(self, record: ShortUrl) -> ShortUrl:
        """
        Persist a new record and commit.
        
        Raises:
            ConflictError: short_code is already taken
            StoreError: any other database failure
        """
        pass
    
    @abstractmethod
    def get(self, short_code: str) -> Optional[ShortUrl]:
        """Return the record for short_code, expired or not, or None"""
        pass
    
    @abstractmethod
    def delete(self, short_code: str) -> bool:
        """Delete the record; False if it did not exist"""
        pass
    
    @abstractmethod
    def increment_clicks(self, short_code: str) -> None:
        """Atomically add one to the record's click counter"""
        pass


class SQLAlchemyUrlStore(UrlStore):
    """
    UrlStore over a SQLAlchemy session.
    
    Operations are synchronous (fast with indexes) and called from async
    services, the same way the rest of the app uses the session.
    """
    
    def __init__(self, db: Session):
        self.db = db
    
    def add(self, record: ShortUrl) -> ShortUrl:
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except IntegrityError as e:
            # Unique constraint on short_code - another writer got there first
            self.db.rollback()
            raise ConflictError(record.short_code) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to store short code '{record.short_code}'") from e

        return record
    
    def get(self, short_code: str) -> Optional[ShortUrl]:
        try:
            return self.db.query(ShortUrl).filter(ShortUrl.short_code == short_code).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to read short code '{short_code}'") from e
    
    def delete(self, short_code: str) -> bool:
        try:
            deleted = (
                self.db.query(ShortUrl)
                .filter(ShortUrl.short_code == short_code)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to delete short code '{short_code}'") from e
        return deleted > 0
    
    def increment_clicks(self, short_code: str) -> None:
        try:
            self.db.execute(
                update(ShortUrl)
                .where(ShortUrl.short_code == short_code)
                .values(click_count=ShortUrl.click_count + 1)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to count click for '{short_code}'") from e
