"""Link directory: slug creation and both lookup directions.

This is the only component that creates links or translates between a URL and
its slug. It keeps two inverse Redis keys in front of the database::

    url:{original_url}  ->  slug
    slug:{slug}         ->  original_url

The database stays authoritative. The cache is filled lazily after every
successful create or database read and is never invalidated.

Flow Diagram — find_or_create_by_url()
======================================
::
    ┌─────────────┐
    │ GET url:{u} │
    └──────┬──────┘
    HIT?   │
    ┌──────┴──────┐
    │ NO           │ YES
    │              ▼
    │        ┌───────────┐   row found
    │        │ SELECT by │──────────────► return link
    │        │ slug      │
    │        └─────┬─────┘
    │              │ stale pointer
    ▼◄─────────────┘
    ┌─────────────┐   row found
    │ SELECT by   │──────────────► record mapping, return link
    │ original_url│
    └──────┬──────┘
           ▼
    ┌─────────────┐   invalid / slug taken
    │ validate,   │──────────────► return unsaved link with errors
    │ allocate,   │
    │ INSERT      │
    └──────┬──────┘
           ▼
    record mapping, return link

Flow Diagram — find_by_slug()
=============================
::
    GET slug:{s} ── non-empty ──► return cached URL (str)
         │ miss / empty / Redis error
         ▼
    SELECT by slug ── found ──► record mapping, return original_url
         │
         ▼
        None

Key Behaviours
===============
- find_or_create_by_url returns a Link, find_by_slug returns a str. The two
  are kept apart on purpose; callers of the slug path only need the URL text.
- Redis errors never abort an operation: reads degrade to a miss, writes are
  logged and skipped.
- Both cache keys are written in the same order every time, URL key first.
  A failure between the two leaves the slug key missing, which find_by_slug
  tolerates by reading the database.
- Nothing here is locked. Two concurrent creations of the same URL can both
  insert a row; only slug uniqueness is enforced, by the database.

Classes:
    LinkDirectory:  Request-scoped service over a session, a Redis client
        and the shared allocator.
"""

import time
from typing import Optional

import redis.asyncio as redis
from prometheus_client import Counter, Histogram
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from shortlink import base62
from shortlink.enums import CacheStatus, LookupDirection, RequestStatus
from shortlink.models import SLUG_TAKEN_MESSAGE, Link

__all__ = ["SLUG_OFFSET", "LinkDirectory", "url_cache_key", "slug_cache_key"]

# encode(SLUG_OFFSET) == "a00000": the first allocated slug is six characters.
SLUG_OFFSET = 10 * base62.BASE**5


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shortlink_creation_requests_total",
    "find_or_create_by_url calls by outcome",
    ["status"],
)
LINK_LOOKUP_REQUESTS_TOTAL = Counter(
    "shortlink_lookup_requests_total",
    "Cache lookups by mapping direction and hit",
    ["direction", "cache_hit"],
)
CACHE_ERRORS_TOTAL = Counter(
    "shortlink_cache_errors_total",
    "Redis errors degraded to a miss or a skipped write",
)
LINK_CREATION_DURATION = Histogram(
    "shortlink_creation_duration_seconds",
    "Time taken by find_or_create_by_url",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
LINK_LOOKUP_DURATION = Histogram(
    "shortlink_lookup_duration_seconds",
    "Time taken by find_by_slug",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)


def url_cache_key(url: str) -> str:
    return f"url:{url}"


def slug_cache_key(slug: str) -> str:
    return f"slug:{slug}"


class LinkDirectory:
    """Create links and resolve them in either direction.

    Example:
        >>> directory = LinkDirectory.from_context(ctx)
        >>> link = await directory.find_or_create_by_url("https://example.com")
        >>> await directory.find_by_slug(link.slug)
        'https://example.com'
    """

    def __init__(self, ctx: "RequestContext"):
        self._db = ctx.database
        self._cache = ctx.cache
        self._allocator = ctx.allocator
        self._logger = ctx.logger
        self._cache_ttl = ctx.settings.LINK_CACHE_TTL_SECONDS or None

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkDirectory":
        return cls(ctx)

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def find_or_create_by_url(self, url: str, slug: Optional[str] = None) -> Link:
        """Return the link for ``url``, creating it on first sight.

        Args:
            url: Original URL, matched exactly (case-sensitive).
            slug: Optional caller-chosen slug, used only if a new link is created.

        Returns:
            Link: Persisted link, or an unsaved link whose ``errors`` explain
            why it could not be stored.

        Raises:
            CounterUnavailableError: If no identifier could be allocated.
        """
        start_time = time.perf_counter()
        try:
            cached_slug = await self._cache_get(url_cache_key(url), LookupDirection.URL_TO_SLUG)
            if cached_slug:
                link = await self._find_one_by_slug(cached_slug)
                if link is not None:
                    LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.EXISTING).inc()
                    return link
                self._logger.warning(f"Cached slug '{cached_slug}' for {url} has no row; reading by URL")

            link = await self._find_one_by_url(url)
            if link is not None:
                await self._record_mapping(link.original_url, link.slug)
                LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.EXISTING).inc()
                return link

            link = await self.create(url, slug)
            status = RequestStatus.SUCCESS if link.persisted else RequestStatus.VALIDATION_ERROR
            LINK_CREATION_REQUESTS_TOTAL.labels(status=status).inc()
            return link

        except Exception:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise
        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

    async def create(self, url: str, slug: Optional[str] = None) -> Link:
        """Validate and insert a new link without the dedup lookup.

        A slug is allocated only when ``slug`` is not given. On failure the
        session is rolled back, nothing is cached and the unsaved link is
        returned with its errors.
        """
        link = Link(original_url=url, slug=slug)
        if not link.validate():
            self._logger.info(f"Link rejected: {link.errors}")
            return link

        if slug:
            if await self._find_one_by_slug(slug) is not None:
                link.errors.append(SLUG_TAKEN_MESSAGE)
                self._logger.info(f"Requested slug '{slug}' is already taken")
                return link
        else:
            link.slug = await self._allocate_slug()

        self._db.add(link)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            link.errors.append(SLUG_TAKEN_MESSAGE)
            self._logger.error(f"Slug collision on insert for '{link.slug}': {exc.orig}")
            return link
        await self._db.refresh(link)

        await self._record_mapping(link.original_url, link.slug)
        self._logger.info(f"Link created: {link.slug} -> {link.original_url}")
        return link

    async def find_by_slug(self, slug: str) -> Optional[str]:
        """Resolve a slug to its original URL text, or None when unknown."""
        start_time = time.perf_counter()
        try:
            cached_url = await self._cache_get(slug_cache_key(slug), LookupDirection.SLUG_TO_URL)
            if cached_url:
                return cached_url

            link = await self._find_one_by_slug(slug)
            if link is None:
                self._logger.debug(f"Slug not found: {slug}")
                return None

            await self._record_mapping(link.original_url, link.slug)
            return link.original_url
        finally:
            LINK_LOOKUP_DURATION.observe(time.perf_counter() - start_time)

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _allocate_slug(self) -> str:
        allocated_id = await self._allocator.next()
        return base62.encode(SLUG_OFFSET + allocated_id - self._allocator.initial)

    async def _find_one_by_slug(self, slug: str) -> Optional[Link]:
        result = await self._db.execute(select(Link).where(Link.slug == slug))
        return result.scalar_one_or_none()

    async def _find_one_by_url(self, url: str) -> Optional[Link]:
        # original_url is not unique; racing creations can leave duplicates.
        result = await self._db.execute(select(Link).where(Link.original_url == url).order_by(Link.id).limit(1))
        return result.scalar_one_or_none()

    async def _cache_get(self, key: str, direction: LookupDirection) -> Optional[str]:
        try:
            value = await self._cache.get(key)
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache read failed for {key}: {exc}")
            value = None

        cache_hit = CacheStatus.HIT if value else CacheStatus.MISS
        LINK_LOOKUP_REQUESTS_TOTAL.labels(direction=direction, cache_hit=cache_hit).inc()
        return value or None

    async def _record_mapping(self, original_url: str, slug: str) -> None:
        """Write both directions of a mapping, URL key first."""
        try:
            await self._cache.set(url_cache_key(original_url), slug, ex=self._cache_ttl)
            await self._cache.set(slug_cache_key(slug), original_url, ex=self._cache_ttl)
        except redis.RedisError as exc:
            CACHE_ERRORS_TOTAL.inc()
            self._logger.warning(f"Cache write failed for {slug}: {exc}")
