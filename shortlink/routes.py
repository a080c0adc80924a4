"""FastAPI route definitions for the shortlink REST API.

API Endpoint Overview
=====================
::
    POST /api/v1/encode          (also POST /encode)
        ├─ EncodeRequest (request body)
        └─ EncodeResponse (200) or 422 / 503

    GET  /api/v1/decode/{slug}   (also GET /decode/{slug})
        └─ DecodeResponse (200) or 404

    GET  /api/v1/decode?url=...  (also GET /decode?url=...)
        └─ DecodeResponse (200) or 400 / 404

    GET  /health
        └─ HealthResponse (200)

    GET  /{slug}
        └─ 307 Redirect or 404

How to Use
===========
**Step 1 — Include routers**::
    from shortlink.routes import api_router, root_router
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(api_router, include_in_schema=False)
    app.include_router(root_router)

**Step 2 — Access endpoints**::
    POST http://localhost:8000/api/v1/encode
    {"url": "https://example.com"}

    GET http://localhost:8000/api/v1/decode/a00000
    GET http://localhost:8000/api/v1/decode?url=http://localhost:8000/a00000

Key Behaviours
===============
- Errors are raised as HTTPException and rendered as {"error": ...} by the
  handler registered in shortlink.main.
- Encode is idempotent: posting the same URL twice returns the same short URL.
- Decode by URL only unwraps short URLs; posting a long URL gives 404.
- root_router must be included last; its /{slug} route matches any
  single-segment path.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from shortlink.dependencies import RequestContext, get_decode_resolver, get_link_directory, get_request_context
from shortlink.enums import HealthStatus
from shortlink.exceptions import CounterUnavailableError
from shortlink.link_directory import LinkDirectory
from shortlink.models import BLANK_URL_MESSAGE
from shortlink.resolver import DecodeResolver
from shortlink.schemas import DecodeResponse, EncodeRequest, EncodeResponse, ErrorResponse, HealthResponse

__all__ = ["api_router", "root_router"]

NOT_FOUND_MESSAGE = "Short URL not found"
MISSING_PARAMETER_MESSAGE = "Slug or URL parameter required"

api_router = APIRouter()
root_router = APIRouter()


@api_router.post(
    "/encode",
    response_model=EncodeResponse,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["links"],
)
async def encode(
    payload: EncodeRequest,
    ctx: RequestContext = Depends(get_request_context),
    directory: LinkDirectory = Depends(get_link_directory),
) -> EncodeResponse:
    if not (payload.url or "").strip():
        raise HTTPException(status_code=422, detail=[BLANK_URL_MESSAGE])

    ctx.logger.info(f"Encode requested: {payload.url}")
    try:
        link = await directory.find_or_create_by_url(payload.url, slug=payload.slug)
    except CounterUnavailableError as exc:
        ctx.logger.error(f"Encode failed, counter unavailable: {exc}")
        raise HTTPException(status_code=503, detail="Unable to allocate a short link") from exc

    if not link.persisted:
        ctx.logger.warning(f"Encode rejected: {link.errors}")
        raise HTTPException(status_code=422, detail=link.errors or ["Unable to create short link"])

    ctx.logger.info(f"Encoded {link.slug} in {ctx.get_duration():.1f}ms")
    return EncodeResponse(short_url=link.full_short_url(ctx.short_url_base))


@api_router.get(
    "/decode/{slug}",
    response_model=DecodeResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["links"],
)
async def decode_slug(
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    directory: LinkDirectory = Depends(get_link_directory),
) -> DecodeResponse:
    original_url = await directory.find_by_slug(slug)
    if original_url is None:
        ctx.logger.info(f"Decode miss for slug: {slug}")
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return DecodeResponse(original_url=original_url)


@api_router.get(
    "/decode",
    response_model=DecodeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["links"],
)
async def decode_url(
    url: str | None = None,
    ctx: RequestContext = Depends(get_request_context),
    resolver: DecodeResolver = Depends(get_decode_resolver),
) -> DecodeResponse:
    if url is None:
        raise HTTPException(status_code=400, detail=MISSING_PARAMETER_MESSAGE)

    original_url = await resolver.find_by_url(url)
    if original_url is None:
        ctx.logger.info(f"Decode miss for url: {url}")
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return DecodeResponse(original_url=original_url)


@root_router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@root_router.get("/{slug}", tags=["redirect"])
async def redirect_to_url(
    slug: str,
    ctx: RequestContext = Depends(get_request_context),
    directory: LinkDirectory = Depends(get_link_directory),
) -> RedirectResponse:
    original_url = await directory.find_by_slug(slug)
    if original_url is None:
        ctx.logger.warning(f"Redirect failed - slug not found: {slug}")
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)

    return RedirectResponse(url=original_url, status_code=307)
