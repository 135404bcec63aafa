"""
Factory for creating link store instances.

Configuration is passed in explicitly; the factory keeps no cached
instance of its own. The FastAPI dependency layer decides how long a
store lives.
"""

import logging
from enum import Enum

from .strategies import LinkStoreStrategy, SQLLinkStore, RedisLinkStore, InMemoryLinkStore
from shortlink_app.config import Settings
from shortlink_app.database.connection import Base, build_engine, build_session_factory

logger = logging.getLogger(__name__)


class LinkStoreBackend(Enum):
    """Available link store backends"""
    SQL = "sql"
    REDIS = "redis"
    MEMORY = "memory"


class LinkStoreFactory:
    """Simple factory for creating link store instances."""

    @classmethod
    def create(cls, backend: LinkStoreBackend, config: Settings) -> LinkStoreStrategy:
        """
        Create a link store for the given backend.

        Args:
            backend: Type of store backend (from enum)
            config: Settings carrying connection details and the app_id

        Returns:
            A ready-to-use link store

        Raises:
            ValueError: If backend is unknown
        """
        if backend == LinkStoreBackend.SQL:
            # Import models to ensure they're registered with Base
            import shortlink_app.models  # noqa: F401

            engine = build_engine(config.database_url)
            Base.metadata.create_all(bind=engine)
            store = SQLLinkStore(build_session_factory(engine))
            logger.info("SQL link store initialized (%s)", engine.url.render_as_string(hide_password=True))

        elif backend == LinkStoreBackend.REDIS:
            import redis

            redis_client = redis.from_url(
                config.redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            # Fail fast at startup rather than on the first request
            redis_client.ping()
            store = RedisLinkStore(redis_client, app_id=config.app_id)
            logger.info("Redis link store initialized (namespace %s)", config.app_id)

        elif backend == LinkStoreBackend.MEMORY:
            store = InMemoryLinkStore()
            logger.info("In-memory link store initialized")

        else:
            raise ValueError(f"Unknown link store backend: {backend}")

        return store
