from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from shortlink_app.config import settings
from shortlink_app.dependencies import get_access_recorder, get_url_service
from shortlink_app.errors import NotFoundError
from shortlink_app.services.access_recorder import AccessRecorder, extract_client_ip
from shortlink_app.services.url_service import URLService

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_url(
    short_code: str,
    request: Request,
    url_service: URLService = Depends(get_url_service),
    recorder: AccessRecorder = Depends(get_access_recorder)
):
    """
    Redirect to the original URL.

    Flow:
    1. Resolve the code (cache first, database on miss)
    2. Disabled codes answer exactly like unknown ones
    3. Schedule access recording and redirect without waiting for it

    Geo lookup and the history insert happen in a background task, so a
    slow or broken GeoIP backend never delays the redirect.
    """
    record = await url_service.get(short_code)
    if not record.is_enabled:
        raise NotFoundError(f"URL with code '{short_code}' not found")

    recorder.schedule(
        url_id=record.id,
        short_code=record.short_code,
        ip_address=extract_client_ip(request, settings.trusted_platform),
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )

    return RedirectResponse(url=record.original_url, status_code=status.HTTP_308_PERMANENT_REDIRECT)
