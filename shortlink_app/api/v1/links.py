from typing import List

from fastapi import APIRouter, Depends, Query, status

from shortlink_app.config import settings
from shortlink_app.exceptions import LinkNotFoundError
from shortlink_app.schemas.link import ErrorResponse, LinkCreate, LinkResponse, LinkStats
from shortlink_app.services.link_allocator import Clock, LinkAllocator
from shortlink_app.dependencies import get_allocator, get_clock, get_link_store
from shortlink_app.store.strategies import LinkStoreStrategy

router = APIRouter(prefix="/links", tags=["links"])


@router.post(
    "",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Custom code already taken"},
        422: {"model": ErrorResponse, "description": "Invalid URL, code or validity"},
        503: {"model": ErrorResponse, "description": "Store unavailable or no free code"},
    },
)
async def create_link(
    link_data: LinkCreate,
    allocator: LinkAllocator = Depends(get_allocator)
):
    """Create a new short link"""
    return await allocator.create(
        original_url=link_data.original_url,
        owner_id=link_data.owner_id,
        custom_code=link_data.custom_code,
        validity_minutes=link_data.validity_minutes,
        timeout=settings.request_timeout_seconds,
    )


@router.get("", response_model=List[LinkResponse])
async def list_links(
    owner_id: str = Query(..., min_length=1),
    store: LinkStoreStrategy = Depends(get_link_store)
):
    """List an owner's links, newest first"""
    return await store.list_by_owner(owner_id)


@router.get("/{code}", response_model=LinkResponse, responses={404: {"model": ErrorResponse}})
async def get_link_info(
    code: str,
    store: LinkStoreStrategy = Depends(get_link_store)
):
    """Get information about a short link (does not count a click)"""
    link = await store.get(code)
    if not link:
        raise LinkNotFoundError(code)
    return link


@router.get("/{code}/stats", response_model=LinkStats, responses={404: {"model": ErrorResponse}})
async def get_link_stats(
    code: str,
    store: LinkStoreStrategy = Depends(get_link_store),
    clock: Clock = Depends(get_clock)
):
    """Get click statistics for a short link"""
    link = await store.get(code)
    if not link:
        raise LinkNotFoundError(code)
    return LinkStats(
        code=link.code,
        clicks=link.clicks,
        created_at=link.created_at,
        expires_at=link.expires_at,
        expired=link.is_expired(clock()),
    )
