"""Short link redirection endpoints."""

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import RedirectResponse

from shortlink.api.dependencies import get_link_service, get_settings
from shortlink.core.config import Settings
from shortlink.db.session import get_db
from shortlink.services.shortener import LinkService

router = APIRouter(tags=["redirect"])


@router.get("/", include_in_schema=False)
async def root(settings: Settings = Depends(get_settings)):
    """Send visitors of the bare domain to the front end."""
    return RedirectResponse(url=settings.FRONTEND_URL, status_code=302)


@router.get("/{slug}", response_class=RedirectResponse)
async def redirect_to_target(
    slug: str,
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
    settings: Settings = Depends(get_settings),
):
    """Redirect to the target, or to the front end's gate or 404 page.

    Live unprotected links get a permanent redirect; protected ones are sent
    to the password gate temporarily so the gate is shown on every visit.
    """
    cached = await link_service.resolve(db, slug)

    if cached is None:
        logger.debug("Redirect miss", slug=slug)
        return RedirectResponse(url=f"{settings.FRONTEND_URL}/404", status_code=302)

    if cached.protected:
        return RedirectResponse(url=f"{settings.FRONTEND_URL}/gate/{slug}", status_code=302)

    return RedirectResponse(url=cached.target_url, status_code=301)
