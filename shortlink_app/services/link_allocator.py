import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from shortlink_app.exceptions import (
    AllocationExhaustedError,
    CodeTakenError,
    OperationTimeoutError,
)
from shortlink_app.services.short_code_strategies import ShortCodeStrategy, RandomShortCodeStrategy
from shortlink_app.services.validators import (
    NEVER,
    parse_validity,
    validate_custom_code,
    validate_original_url,
)
from shortlink_app.store.models import ShortLink
from shortlink_app.store.strategies import LinkStoreStrategy

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LinkAllocator:
    """
    Turns a long URL into a persisted short link.

    Dependencies are injected (store, code strategy, clock) so the allocator
    holds no shared mutable state of its own. Uniqueness is decided by the
    store's atomic create-if-absent, never by a separate existence check.
    """

    def __init__(
        self,
        store: LinkStoreStrategy,
        code_strategy: Optional[ShortCodeStrategy] = None,
        max_attempts: int = 300,
        clock: Clock = utc_now,
    ):
        """
        Args:
            store: Link store providing atomic create-if-absent
            code_strategy: Source of candidate codes (random, 6 chars by default)
            max_attempts: Upper bound on generated-code collisions per request
            clock: Returns the current timezone-aware time
        """
        self.store = store
        self.code_strategy = code_strategy or RandomShortCodeStrategy()
        self.max_attempts = max_attempts
        self.clock = clock

    async def create(
        self,
        original_url: str,
        owner_id: str,
        custom_code: Optional[str] = None,
        validity_minutes: Union[int, str, None] = NEVER,
        timeout: Optional[float] = None,
    ) -> ShortLink:
        """Create a short link.

        Validation runs before any store call. A custom code gets exactly
        one create-if-absent; a generated code is redrawn on collision up
        to ``max_attempts`` times.

        Args:
            original_url: Absolute URL to redirect to, stored unmodified
            owner_id: Opaque identity of the creator
            custom_code: Caller-chosen code; blank means generate one
            validity_minutes: Minutes until expiry, or "never"
            timeout: Seconds to bound the whole call by, or None

        Returns:
            The persisted record

        Raises:
            InvalidUrlError, InvalidCodeError, InvalidValidityError: Bad input
            CodeTakenError: The custom code already exists
            AllocationExhaustedError: No free generated code within the bound
            StoreUnavailableError: The store could not be reached
            OperationTimeoutError: ``timeout`` elapsed first
        """
        validate_original_url(original_url)
        if custom_code is not None:
            custom_code = custom_code.strip() or None
        if custom_code is not None:
            validate_custom_code(custom_code)
        validity = parse_validity(validity_minutes)

        coro = self._allocate(original_url, owner_id, custom_code, validity)
        if timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Allocation for %s timed out after %ss", original_url, timeout)
            raise OperationTimeoutError(f"Allocation timed out after {timeout}s") from e

    async def _allocate(
        self,
        original_url: str,
        owner_id: str,
        custom_code: Optional[str],
        validity: Optional[int],
    ) -> ShortLink:
        if custom_code is not None:
            link = self._build(custom_code, original_url, owner_id, validity)
            if not await self.store.create_if_absent(link):
                logger.info("Custom short code collision: %s", custom_code)
                raise CodeTakenError(custom_code)
            logger.info("Link created: %s -> %s (owner %s, custom)", link.code, original_url, owner_id)
            return link

        for attempt in range(1, self.max_attempts + 1):
            link = self._build(self.code_strategy.generate(), original_url, owner_id, validity)
            if await self.store.create_if_absent(link):
                logger.info(
                    "Link created: %s -> %s (owner %s, attempt %d)",
                    link.code, original_url, owner_id, attempt,
                )
                return link
            logger.debug("Generated code %s already taken, redrawing", link.code)

        logger.error("Gave up allocating a code for %s after %d attempts", original_url, self.max_attempts)
        raise AllocationExhaustedError(self.max_attempts)

    def _build(
        self,
        code: str,
        original_url: str,
        owner_id: str,
        validity: Optional[int],
    ) -> ShortLink:
        # One clock read per record so expires_at - created_at is exact
        now = self.clock()
        return ShortLink(
            code=code,
            original_url=original_url,
            created_at=now,
            expires_at=now + timedelta(minutes=validity) if validity is not None else None,
            clicks=0,
            owner_id=owner_id,
        )
