from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from shortlink_app.exceptions import ExpiredError, NotFoundError, StoreError
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_long_url(
    short_code: str,
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL.
    
    Flow:
    1. Resolve through the cache (store only on a miss)
    2. Count the click in the store
    3. Redirect
    
    A cache outage only makes this slower; a store outage on a miss is a 500.
    """
    try:
        long_url = await url_service.get_long_url_for_redirect(short_code)
    except ExpiredError as e:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not resolve short URL"
        )
    
    await url_service.record_click(short_code)
    
    return RedirectResponse(url=long_url, status_code=status.HTTP_302_FOUND)
