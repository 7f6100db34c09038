"""
FastAPI Endpoints for URL Shortener Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request validation (Pydantic models)
- Rate limiting
- Caller identity (user id forwarded by the auth gateway)
- Delegating to service layer

Service errors are URLShortenerException subclasses; the handler registered
in main turns them into JSON error responses with their HTTP status.
"""

import math
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.api.schemas import (
    ErrorResponse,
    LinkListResponse,
    LinkResponse,
    Pagination,
    ShortenRequest,
    ShortenResponse,
    StatsResponse,
    UpdateLinkRequest,
)
from shortlink.core.rate_limit import RATE_LIMITS, limiter
from shortlink.core.resource_manager import get_code_generator, get_resolution_cache
from shortlink.core.setting import settings
from shortlink.core.validators import sanitize_short_code
from shortlink.db.session import get_session
from shortlink.services.background_tasks import record_click_background
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.resolution_cache import ResolutionCache
from shortlink.services.url_service import URLShorteningService

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid URL, alias or expiry"},
    403: {"model": ErrorResponse, "description": "URL not allowed or link not owned"},
    404: {"model": ErrorResponse, "description": "Short code or link not found"},
    409: {"model": ErrorResponse, "description": "Alias taken or code collision"},
}


def get_url_service(
    session: AsyncSession = Depends(get_session),
    cache: ResolutionCache = Depends(get_resolution_cache),
    code_generator: CodeGenerator = Depends(get_code_generator),
) -> URLShorteningService:
    return URLShorteningService(
        session,
        cache=cache,
        code_generator=code_generator,
        base_url=settings.BASE_URL,
        cache_ttl=settings.CACHE_TTL,
    )


def get_owner_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Caller's user id as forwarded by the authentication gateway."""
    return x_user_id or None


def require_owner_id(owner_id: Optional[str] = Depends(get_owner_id)) -> str:
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return owner_id


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


def _clean_short_code(short_code: str) -> str:
    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid short code format. Short codes contain only letters, digits and hyphens."
        )
    return sanitized_code


@router.post(
    "/api/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={code: ERROR_RESPONSES[code] for code in (400, 403, 409)},
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version with a unique code"
)
@limiter.limit(RATE_LIMITS["shorten"])
async def create_short_url(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: ShortenRequest,
    owner_id: Optional[str] = Depends(get_owner_id),
    url_service: URLShorteningService = Depends(get_url_service),
) -> ShortenResponse:
    result = await url_service.create_short_link(
        body.url,
        custom_alias=body.custom_alias,
        owner_id=owner_id,
        title=body.title,
        expires_at=body.expires_at,
    )
    return ShortenResponse(
        short_code=result.short_code,
        short_url=result.short_url,
        original_url=result.original_url,
    )


@router.get(
    "/api/stats/{short_code}",
    response_model=StatsResponse,
    responses={404: ERROR_RESPONSES[404]},
    summary="Get URL statistics",
    description="Returns click count and creation date for an active short URL"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_url_stats(
    short_code: str,
    request: Request,
    url_service: URLShorteningService = Depends(get_url_service),
) -> StatsResponse:
    link = await url_service.get_stats(_clean_short_code(short_code))
    return StatsResponse(
        original_url=link.original_url,
        short_code=link.short_code,
        created_at=link.created_at.isoformat(),
        click_count=link.click_count,
    )


@router.get(
    "/api/urls",
    response_model=LinkListResponse,
    summary="List your links"
)
@limiter.limit(RATE_LIMITS["links"])
async def list_links(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    owner_id: str = Depends(require_owner_id),
    url_service: URLShorteningService = Depends(get_url_service),
) -> LinkListResponse:
    links, total = await url_service.list_links(owner_id, page=page, limit=limit)
    return LinkListResponse(
        links=[LinkResponse.from_link(link, url_service.build_short_url(link.short_code)) for link in links],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get(
    "/api/urls/{link_id}",
    response_model=LinkResponse,
    summary="Get one of your links",
    responses={code: ERROR_RESPONSES[code] for code in (403, 404)},
)
@limiter.limit(RATE_LIMITS["links"])
async def get_link(
    link_id: str,
    request: Request,
    owner_id: str = Depends(require_owner_id),
    url_service: URLShorteningService = Depends(get_url_service),
) -> LinkResponse:
    link = await url_service.get_link(link_id, owner_id)
    return LinkResponse.from_link(link, url_service.build_short_url(link.short_code))


@router.put(
    "/api/urls/{link_id}",
    response_model=LinkResponse,
    summary="Update title, active flag or expiry of one of your links",
    responses={code: ERROR_RESPONSES[code] for code in (400, 403, 404)},
)
@limiter.limit(RATE_LIMITS["links"])
async def update_link(
    link_id: str,
    request: Request,
    body: UpdateLinkRequest,
    owner_id: str = Depends(require_owner_id),
    url_service: URLShorteningService = Depends(get_url_service),
) -> LinkResponse:
    # Only fields present in the body are applied (null clears expiry/title)
    changes = {field: getattr(body, field) for field in body.model_fields_set}
    if changes.get("is_active", True) is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="is_active cannot be null"
        )
    link = await url_service.update_link(link_id, owner_id, **changes)
    return LinkResponse.from_link(link, url_service.build_short_url(link.short_code))


@router.delete(
    "/api/urls/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate one of your links",
    responses={code: ERROR_RESPONSES[code] for code in (403, 404)},
)
@limiter.limit(RATE_LIMITS["links"])
async def delete_link(
    link_id: str,
    request: Request,
    owner_id: str = Depends(require_owner_id),
    url_service: URLShorteningService = Depends(get_url_service),
) -> None:
    await url_service.delete_link(link_id, owner_id)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to original URL",
    responses={404: ERROR_RESPONSES[404]},
    description="Takes a short code and redirects to the original long URL"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    url_service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    Click accounting runs as a background task after the response is sent.

    Raises:
        HTTPException 400: If short code format is invalid
        ShortCodeNotFoundError (404): If the code doesn't resolve
        HTTPException 429: If rate limit exceeded
    """
    short_code = _clean_short_code(short_code)

    original_url = await url_service.resolve_short_code(short_code)

    background_tasks.add_task(
        record_click_background,
        short_code=short_code,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        referrer=request.headers.get("Referer"),
    )

    return RedirectResponse(
        url=original_url,
        status_code=status.HTTP_302_FOUND
    )
