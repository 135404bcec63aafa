from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from shortlink_app.config import settings
from shortlink_app.exceptions import LinkExpiredError, LinkNotFoundError
from shortlink_app.schemas.link import ErrorResponse
from shortlink_app.services.link_resolver import LinkResolver, ResolveStatus
from shortlink_app.dependencies import get_resolver

router = APIRouter(tags=["redirect"])

_RESPONSES = {
    302: {"description": "Redirect to the original URL"},
    404: {"model": ErrorResponse, "description": "Short link was never created"},
    410: {"model": ErrorResponse, "description": "Short link has expired"},
}


async def _redirect(code: str, resolver: LinkResolver) -> RedirectResponse:
    """
    Resolve and redirect.

    1. Look up the link and check expiry
    2. Atomically count the click (failure is logged, never blocks)
    3. 302 to the original URL

    NotFound and Expired stay distinct (404 vs 410) so users can tell
    whether the code was ever valid.
    """
    resolution = await resolver.resolve(code, timeout=settings.request_timeout_seconds)

    if resolution.status is ResolveStatus.NOT_FOUND:
        raise LinkNotFoundError(code)
    if resolution.status is ResolveStatus.EXPIRED:
        raise LinkExpiredError(code)

    return RedirectResponse(url=resolution.original_url, status_code=status.HTTP_302_FOUND)


@router.get("/s", responses=_RESPONSES)
async def redirect_by_query(
    s: str = Query(..., description="Short code"),
    resolver: LinkResolver = Depends(get_resolver)
):
    """Share-link form: /s?s=<code>"""
    return await _redirect(s, resolver)


@router.get("/{code}", responses=_RESPONSES)
async def redirect_by_path(
    code: str,
    resolver: LinkResolver = Depends(get_resolver)
):
    """Path form: /<code>"""
    return await _redirect(code, resolver)
