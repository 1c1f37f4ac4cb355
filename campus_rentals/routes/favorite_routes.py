import uuid

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import ListingAudience
from schemas.schema import FavoriteToggleOut, ListingFilter, ListingPageOut, RequestContext
from services.favorite_service import FavoriteService
from services.listing_query_service import ListingQueryService

router = APIRouter(tags=["Favorites"])


@cbv(router=router)
class FavoriteRoutes:
    db: AsyncSession = Depends(get_db_async)
    ctx: RequestContext = Depends(get_current_user)

    @router.get("/", response_model=ListingPageOut)
    @safe_handler
    async def list_favorites(self, request: Request, filters: ListingFilter = Depends()):
        return await ListingQueryService(self.db).query_listings(
            filters, ListingAudience.FAVORITES, self.ctx
        )

    @router.post("/{listing_id}/toggle", response_model=FavoriteToggleOut)
    @safe_handler
    async def toggle(self, request: Request, listing_id: uuid.UUID):
        return await FavoriteService(self.db).toggle_favorite(self.ctx, listing_id)
