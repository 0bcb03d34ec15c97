from fastapi import APIRouter, Depends, HTTPException, status
from shortlink_app.config import settings
from shortlink_app.exceptions import (
    CodeGenerationExhaustedError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from shortlink_app.schemas.url import (
    MessageResponse,
    ShortenRequest,
    ShortenResponse,
    URLDetails,
)
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service
from shortlink_app.utils import ensure_utc

router = APIRouter(prefix="/urls", tags=["urls"])


def build_short_url(short_code: str) -> str:
    return f"{settings.base_url.rstrip('/')}/{short_code}"


@router.post("/shorten", response_model=ShortenResponse)
async def shorten_url(
    payload: ShortenRequest,
    url_service: URLService = Depends(get_url_service)
):
    """Create a new short URL"""
    try:
        url = await url_service.create_short_url(
            payload.original_url,
            custom_short_code=payload.custom_short_code,
            expiration_date=payload.expiration_date,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (CodeGenerationExhaustedError, StoreError):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create short URL"
        )
    return ShortenResponse(shortened_url=build_short_url(url.short_code))


@router.get("/{short_code}", response_model=URLDetails)
async def get_url_info(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get information about a short URL"""
    try:
        url = await url_service.get_url_by_short_code(short_code)
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not read short URL"
        )
    if not url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Short URL not found"
        )
    return URLDetails(
        short_code=url.short_code,
        original_url=url.original_url,
        shortened_url=build_short_url(url.short_code),
        created_at=ensure_utc(url.created_at),
        expires_at=ensure_utc(url.expires_at),
        click_count=url.click_count,
    )


@router.delete("/{short_code}", response_model=MessageResponse)
async def delete_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Delete a short URL (invalidates the cache first)"""
    try:
        await url_service.delete_url(short_code)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not delete short URL"
        )
    return MessageResponse(message=f"Short URL '{short_code}' deleted")
