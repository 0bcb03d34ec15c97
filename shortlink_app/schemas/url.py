from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


class CamelModel(BaseModel):
    """Base schema exchanging camelCase JSON with the frontend"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortenRequest(CamelModel):
    """Body of POST /api/urls/shorten
    
    original_url is validated by the service, not here, so a malformed URL
    is reported as 400 rather than a schema error.
    """
    original_url: str = Field(..., description="The original URL to be shortened")
    custom_short_code: Optional[str] = Field(None, description="Optional alias to use as short code")
    expiration_date: Optional[datetime] = Field(None, description="ISO-8601 instant after which the link stops resolving")


class ShortenResponse(CamelModel):
    shortened_url: str


class URLDetails(CamelModel):
    """Public view of a ShortUrl record"""
    short_code: str
    original_url: str
    shortened_url: str
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    click_count: int


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: datetime
