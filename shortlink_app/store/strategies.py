"""
Link store strategies using Strategy Pattern.

Allows switching between different persistent link stores:
- SQL (SQLAlchemy): SQLite for development, PostgreSQL/MySQL in production
- Redis: shared store for many stateless service instances
- In-memory: tests and single-process demos

Every backend must provide real atomic create-if-absent and atomic
increment. The allocator and resolver never lock anything themselves;
all coordination between concurrent requests happens here.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from redis.exceptions import RedisError
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from shortlink_app.exceptions import StoreUnavailableError
from shortlink_app.models.short_link import ShortLinkRow
from shortlink_app.store.models import ShortLink

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo; everything is stored as UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LinkStoreStrategy(ABC):
    """
    Abstract base class for link stores.

    All methods are async because real backends do network I/O.
    Transport or infrastructure failures raise StoreUnavailableError.
    """

    @abstractmethod
    async def create_if_absent(self, link: ShortLink) -> bool:
        """
        Atomically insert a link unless its code is already stored.

        Args:
            link: Fully populated record to persist

        Returns:
            True if this call created the record, False if the code was
            already present (the existing record is left untouched)
        """
        pass

    @abstractmethod
    async def get(self, code: str) -> Optional[ShortLink]:
        """
        Fetch a link by its short code.

        Returns:
            The stored record or None if the code does not exist
        """
        pass

    @abstractmethod
    async def increment_clicks(self, code: str) -> bool:
        """
        Atomically add one to the link's click counter.

        Returns:
            True if incremented, False if the record no longer exists
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[ShortLink]:
        """Get all links created by an owner, newest first"""
        pass


class InMemoryLinkStore(LinkStoreStrategy):
    """
    In-memory link store using a Python dict.

    Pros:
    - No external services
    - Good for development and testing

    Cons:
    - Not shared between processes or instances
    - Lost on restart

    A single lock makes each operation atomic, whether callers are
    asyncio tasks or threads. Records are copied in and out so callers
    can never mutate stored state directly.
    """

    def __init__(self):
        self._links: Dict[str, ShortLink] = {}
        self._lock = threading.Lock()

    async def create_if_absent(self, link: ShortLink) -> bool:
        with self._lock:
            if link.code in self._links:
                return False
            self._links[link.code] = link.model_copy()
            return True

    async def get(self, code: str) -> Optional[ShortLink]:
        with self._lock:
            link = self._links.get(code)
            return link.model_copy() if link else None

    async def increment_clicks(self, code: str) -> bool:
        with self._lock:
            link = self._links.get(code)
            if link is None:
                return False
            link.clicks += 1
            return True

    async def list_by_owner(self, owner_id: str) -> List[ShortLink]:
        with self._lock:
            links = [
                link.model_copy()
                for link in self._links.values()
                if link.owner_id == owner_id
            ]
        links.sort(key=lambda link: link.created_at, reverse=True)
        return links

    async def delete(self, code: str) -> bool:
        """Remove a record, standing in for an external retention policy"""
        with self._lock:
            return self._links.pop(code, None) is not None


class BlockingLinkStore(LinkStoreStrategy):
    """
    Base for stores built on a blocking driver.

    Subclasses implement the synchronous ``_create_if_absent``, ``_get``,
    ``_increment_clicks`` and ``_list_by_owner``. Each call runs in a worker
    thread, so the event loop keeps serving other requests and
    ``asyncio.wait_for`` can give up on a hung call. An abandoned call still
    finishes in its thread; its result is discarded.
    """

    async def create_if_absent(self, link: ShortLink) -> bool:
        return await asyncio.to_thread(self._create_if_absent, link)

    async def get(self, code: str) -> Optional[ShortLink]:
        return await asyncio.to_thread(self._get, code)

    async def increment_clicks(self, code: str) -> bool:
        return await asyncio.to_thread(self._increment_clicks, code)

    async def list_by_owner(self, owner_id: str) -> List[ShortLink]:
        return await asyncio.to_thread(self._list_by_owner, owner_id)

    @abstractmethod
    def _create_if_absent(self, link: ShortLink) -> bool:
        pass

    @abstractmethod
    def _get(self, code: str) -> Optional[ShortLink]:
        pass

    @abstractmethod
    def _increment_clicks(self, code: str) -> bool:
        pass

    @abstractmethod
    def _list_by_owner(self, owner_id: str) -> List[ShortLink]:
        pass


class SQLLinkStore(BlockingLinkStore):
    """
    SQLAlchemy implementation of the link store.

    - create-if-absent: plain INSERT; the primary key on ``code`` rejects
      duplicates, so an IntegrityError means "already exists"
    - increment: ``UPDATE ... SET clicks = clicks + 1`` executed by the
      database, never read-modify-write in Python

    One short-lived session per operation, so concurrent requests never
    share a session.
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: Configured SQLAlchemy sessionmaker
        """
        self.session_factory = session_factory

    @staticmethod
    def _to_row(link: ShortLink) -> ShortLinkRow:
        return ShortLinkRow(
            code=link.code,
            original_url=link.original_url,
            created_at=link.created_at,
            expires_at=link.expires_at,
            clicks=link.clicks,
            owner_id=link.owner_id,
        )

    @staticmethod
    def _to_record(row: ShortLinkRow) -> ShortLink:
        return ShortLink(
            code=row.code,
            original_url=row.original_url,
            created_at=_as_utc(row.created_at),
            expires_at=_as_utc(row.expires_at),
            clicks=row.clicks,
            owner_id=row.owner_id,
        )

    def _create_if_absent(self, link: ShortLink) -> bool:
        db = self.session_factory()
        try:
            db.add(self._to_row(link))
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            return False
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("SQL create failed for %s: %s", link.code, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e
        finally:
            db.close()

    def _get(self, code: str) -> Optional[ShortLink]:
        db = self.session_factory()
        try:
            row = db.get(ShortLinkRow, code)
            return self._to_record(row) if row else None
        except SQLAlchemyError as e:
            logger.error("SQL get failed for %s: %s", code, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e
        finally:
            db.close()

    def _increment_clicks(self, code: str) -> bool:
        db = self.session_factory()
        try:
            result = db.execute(
                update(ShortLinkRow)
                .where(ShortLinkRow.code == code)
                .values(clicks=ShortLinkRow.clicks + 1)
            )
            db.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("SQL increment failed for %s: %s", code, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e
        finally:
            db.close()

    def _list_by_owner(self, owner_id: str) -> List[ShortLink]:
        db = self.session_factory()
        try:
            rows = (
                db.query(ShortLinkRow)
                .filter(ShortLinkRow.owner_id == owner_id)
                .order_by(ShortLinkRow.created_at.desc())
                .all()
            )
            return [self._to_record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("SQL list failed for owner %s: %s", owner_id, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e
        finally:
            db.close()


# KEYS: link hash, owner index. ARGV: url, created_at, expires_at, owner, score, code
_CREATE_IF_ABSENT_LUA = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return 0
end
redis.call('HSET', KEYS[1],
    'original_url', ARGV[1],
    'created_at', ARGV[2],
    'expires_at', ARGV[3],
    'clicks', 0,
    'owner_id', ARGV[4])
redis.call('ZADD', KEYS[2], ARGV[5], ARGV[6])
return 1
"""

# HINCRBY alone would resurrect a purged link as a bare counter.
_INCREMENT_IF_EXISTS_LUA = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return -1
end
return redis.call('HINCRBY', KEYS[1], 'clicks', 1)
"""


class RedisLinkStore(BlockingLinkStore):
    """
    Redis implementation of the link store.

    Layout (all keys prefixed with the tenant ``app_id``):
    - ``<app_id>:link:<code>``: hash with the record fields
    - ``<app_id>:owner:<owner_id>``: sorted set of codes scored by creation time

    Check-and-set and increment-if-exists run as Lua scripts, which Redis
    executes atomically, so any number of service instances can share one
    Redis without losing uniqueness or clicks.
    """

    def __init__(self, redis_client, app_id: str):
        """
        Args:
            redis_client: Redis client instance (redis.Redis, decode_responses=True)
            app_id: Tenant namespace for keys
        """
        self.redis = redis_client
        self.app_id = app_id
        self._create_script = redis_client.register_script(_CREATE_IF_ABSENT_LUA)
        self._increment_script = redis_client.register_script(_INCREMENT_IF_EXISTS_LUA)

    def _link_key(self, code: str) -> str:
        return f"{self.app_id}:link:{code}"

    def _owner_key(self, owner_id: str) -> str:
        return f"{self.app_id}:owner:{owner_id}"

    def _create_if_absent(self, link: ShortLink) -> bool:
        try:
            created = self._create_script(
                keys=[self._link_key(link.code), self._owner_key(link.owner_id)],
                args=[
                    link.original_url,
                    link.created_at.isoformat(),
                    link.expires_at.isoformat() if link.expires_at else "",
                    link.owner_id,
                    link.created_at.timestamp(),
                    link.code,
                ],
            )
            return int(created) == 1
        except RedisError as e:
            logger.error("Redis create failed for %s: %s", link.code, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e

    def _get(self, code: str) -> Optional[ShortLink]:
        try:
            data = self.redis.hgetall(self._link_key(code))
        except RedisError as e:
            logger.error("Redis get failed for %s: %s", code, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e
        return self._parse(code, data)

    def _increment_clicks(self, code: str) -> bool:
        try:
            clicks = self._increment_script(keys=[self._link_key(code)], args=[])
            return int(clicks) >= 0
        except RedisError as e:
            logger.error("Redis increment failed for %s: %s", code, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e

    def _list_by_owner(self, owner_id: str) -> List[ShortLink]:
        try:
            codes = self.redis.zrevrange(self._owner_key(owner_id), 0, -1)
            pipe = self.redis.pipeline()
            for code in codes:
                pipe.hgetall(self._link_key(code))
            results = pipe.execute()
        except RedisError as e:
            logger.error("Redis list failed for owner %s: %s", owner_id, e)
            raise StoreUnavailableError(f"Link store unavailable: {e}") from e

        links = []
        for code, data in zip(codes, results):
            link = self._parse(code, data)
            # Index entries can outlive hashes removed by retention
            if link is not None:
                links.append(link)
        return links

    @staticmethod
    def _parse(code: str, data: Dict[str, str]) -> Optional[ShortLink]:
        if not data:
            return None
        expires_at = data.get("expires_at") or None
        return ShortLink(
            code=code,
            original_url=data["original_url"],
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            clicks=int(data.get("clicks", 0)),
            owner_id=data["owner_id"],
        )
