"""Dependency injection with a singleton service manager.

This module provides a centralized way to inject database, cache and allocator
dependencies with consistent naming across all API endpoints, using a singleton
pattern for shared resources to minimize per-request overhead.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.allocator import SequentialAllocator
from shortlink.config import Settings, get_settings
from shortlink.database import get_db
from shortlink.link_directory import LinkDirectory
from shortlink.resolver import DecodeResolver

__all__ = [
    "ServiceManager",
    "RequestContext",
    "get_service_manager",
    "get_request_context",
    "get_link_directory",
    "get_decode_resolver",
]


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Holds everything that lives for the whole process: settings, the logger,
    the Redis client and the sequential allocator built on top of it.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self.cache = await self._setup_redis()
            self.allocator = self._setup_allocator()
            self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortlink")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    async def _setup_redis(self) -> redis.Redis:
        """Setup Redis client once."""
        return redis.from_url(self.settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    def _setup_allocator(self) -> SequentialAllocator:
        if self.settings.COUNTER_ALLOW_NON_ATOMIC_FALLBACK:
            self.logger.warning("Non-atomic counter fallback enabled; slugs may collide under concurrent writers")
        return SequentialAllocator(
            self.cache,
            key=self.settings.COUNTER_KEY,
            initial=self.settings.COUNTER_INITIAL,
            allow_non_atomic_fallback=self.settings.COUNTER_ALLOW_NON_ATOMIC_FALLBACK,
            logger=self.logger,
        )

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if hasattr(self, "cache"):
            await self.cache.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        database: Async database session (only per-request resource)
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        base_url: Scheme and host the request arrived on
        start_time: Request start timestamp
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    base_url: str = ""
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def cache(self) -> redis.Redis:
        return self.service_manager.cache

    @property
    def allocator(self) -> SequentialAllocator:
        return self.service_manager.allocator

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    @property
    def short_url_base(self) -> str:
        """Base for public short URLs: BASE_URL when configured, else the request's own."""
        return self.settings.BASE_URL or self.base_url

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        database=db,
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
        base_url=str(request.base_url).rstrip("/"),
    )


def get_link_directory(ctx: RequestContext = Depends(get_request_context)) -> LinkDirectory:
    return LinkDirectory.from_context(ctx)


def get_decode_resolver(directory: LinkDirectory = Depends(get_link_directory)) -> DecodeResolver:
    return DecodeResolver(directory)
