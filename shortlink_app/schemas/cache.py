"""
Cache projection of a ShortUrl record.

This is the only place that knows how cached bytes are laid out. Cache
backends store whatever bytes they are given. The format is internal and
may change between deployments: an entry that no longer decodes is simply
a miss.
"""

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from shortlink_app.models.url import ShortUrl
from shortlink_app.utils import ensure_utc, is_expired

logger = logging.getLogger(__name__)


class CachedUrl(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    original_url: str
    expires_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: ShortUrl) -> "CachedUrl":
        return cls(
            code=record.short_code,
            original_url=record.original_url,
            expires_at=ensure_utc(record.expires_at),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return is_expired(self.expires_at, now)


def encode_cached_url(entry: CachedUrl) -> bytes:
    return entry.model_dump_json(by_alias=True).encode("utf-8")


def decode_cached_url(raw: bytes) -> Optional[CachedUrl]:
    """Decode cached bytes, or None when they are not a CachedUrl"""
    try:
        return CachedUrl.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Discarding undecodable cache entry: %s", e)
        return None
