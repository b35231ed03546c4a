"""Link management endpoints: create, slug check, unlock and early expire."""

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.api import schemas
from shortlink.api.dependencies import get_link_service
from shortlink.db.session import get_db
from shortlink.services.exceptions import (
    InvalidManageTokenError,
    InvalidPasswordError,
    SlugGenerationError,
    SlugUnavailableError,
    URLNotFoundError,
    URLValidationError,
)
from shortlink.services.shortener import LinkService

router = APIRouter(prefix="/urls", tags=["shortener"])


@router.post(
    "",
    response_model=schemas.URLCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": schemas.ErrorResponse, "description": "Invalid URL, slug or TTL"},
        409: {"model": schemas.ErrorResponse, "description": "Slug and its alternatives are taken"},
    },
)
async def create_short_url(
    url_data: schemas.URLCreateRequest,
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        result = await link_service.create(
            db,
            target_url=url_data.target_url,
            ttl=url_data.ttl,
            slug=url_data.slug,
            password=url_data.password,
        )
    except URLValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlugUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SlugGenerationError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return schemas.URLCreateResponse(
        slug=result.slug,
        short_url=result.short_url,
        expires_at=result.expires_at,
        protected=result.protected,
        manage_token=result.manage_token,
    )


@router.get(
    "/check/{slug}",
    response_model=schemas.SlugCheckResponse,
    response_model_exclude_none=True,
    responses={400: {"model": schemas.ErrorResponse, "description": "Invalid slug format"}},
)
async def check_slug(
    slug: str = Path(..., description="Slug to check"),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        availability = await link_service.check_slug(db, slug)
    except URLValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return schemas.SlugCheckResponse(
        available=availability.available,
        suggestion=availability.suggestion,
    )


@router.post(
    "/{slug}/unlock",
    response_model=schemas.UnlockResponse,
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Wrong password"},
        404: {"model": schemas.ErrorResponse, "description": "Link not found or expired"},
    },
)
async def unlock_url(
    body: schemas.UnlockRequest,
    slug: str = Path(..., description="Slug of the protected link"),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        target_url = await link_service.verify_password(db, slug, body.password)
    except URLNotFoundError:
        raise HTTPException(status_code=404, detail="URL not found or expired")
    except InvalidPasswordError as e:
        raise HTTPException(status_code=401, detail=str(e))

    return schemas.UnlockResponse(target_url=target_url)


@router.post(
    "/{slug}/expire",
    response_model=schemas.MessageResponse,
    responses={401: {"model": schemas.ErrorResponse, "description": "Invalid manage token"}},
)
async def expire_url(
    body: schemas.ExpireRequest,
    slug: str = Path(..., description="Slug of the link to expire"),
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
):
    try:
        await link_service.expire_early(db, slug, body.manage_token)
    except InvalidManageTokenError as e:
        raise HTTPException(status_code=401, detail=str(e))

    return schemas.MessageResponse(message="URL has been expired")
