import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from shortlink_app.exceptions import OperationTimeoutError, StoreUnavailableError
from shortlink_app.services.link_allocator import Clock, utc_now
from shortlink_app.services.validators import is_valid_code
from shortlink_app.store.strategies import LinkStoreStrategy

logger = logging.getLogger(__name__)


class ResolveStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Resolution:
    status: ResolveStatus
    code: str
    original_url: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is ResolveStatus.FOUND


class LinkResolver:
    """
    Resolves a short code to its redirect target and counts the click.

    Counting is best-effort relative to redirecting: if the increment
    fails the redirect still goes out and the failure is logged. Within
    the store the increment itself is atomic, so concurrent redirects of
    one link never lose clicks.
    """

    def __init__(self, store: LinkStoreStrategy, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    async def resolve(self, code: str, timeout: Optional[float] = None) -> Resolution:
        """
        Look up ``code``, check expiry, and count the click.

        Args:
            code: Short code from the request
            timeout: Seconds to bound the whole call by, or None

        Returns:
            Resolution with FOUND (and the URL), NOT_FOUND, or EXPIRED

        Raises:
            StoreUnavailableError: The lookup itself failed
            OperationTimeoutError: ``timeout`` elapsed first
        """
        if timeout is None:
            return await self._resolve(code)
        try:
            return await asyncio.wait_for(self._resolve(code), timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Resolve of %s timed out after %ss", code, timeout)
            raise OperationTimeoutError(f"Resolve timed out after {timeout}s") from e

    async def _resolve(self, code: str) -> Resolution:
        # Nothing outside the code format can ever be stored
        if not is_valid_code(code):
            logger.debug("Resolve %s: malformed code", code)
            return Resolution(ResolveStatus.NOT_FOUND, code)

        link = await self.store.get(code)
        if link is None:
            logger.debug("Resolve %s: not found", code)
            return Resolution(ResolveStatus.NOT_FOUND, code)

        if link.is_expired(self.clock()):
            logger.info("Resolve %s: expired at %s", code, link.expires_at.isoformat())
            return Resolution(ResolveStatus.EXPIRED, code)

        await self._count_click(code)
        return Resolution(ResolveStatus.FOUND, code, link.original_url)

    async def _count_click(self, code: str) -> None:
        try:
            if not await self.store.increment_clicks(code):
                logger.warning("Click not counted for %s: record vanished before increment", code)
        except StoreUnavailableError as e:
            logger.error("Click not counted for %s: %s", code, e)
