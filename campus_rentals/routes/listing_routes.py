import uuid

from fastapi import APIRouter, Depends, Request, status
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import ListingAudience
from schemas.schema import (
    ListingCreateSchema,
    ListingFilter,
    ListingOut,
    ListingPageOut,
    ListingStatusSchema,
    ListingUpdateSchema,
    OfferCreateSchema,
    RentalOut,
    RequestContext,
    UserBriefOut,
)
from services.lifecycle_service import LifecycleService
from services.listing_query_service import ListingQueryService
from services.listing_service import ListingService
from services.rental_service import RentalService

router = APIRouter(tags=["Listings"])


@cbv(router=router)
class ListingRoutes:
    db: AsyncSession = Depends(get_db_async)
    ctx: RequestContext = Depends(get_current_user)

    @router.get("/", response_model=ListingPageOut)
    @safe_handler
    async def browse(self, request: Request, filters: ListingFilter = Depends()):
        return await ListingQueryService(self.db).query_listings(
            filters, ListingAudience.BROWSE, self.ctx
        )

    @router.get("/mine", response_model=ListingPageOut)
    @safe_handler
    async def owner_panel(self, request: Request, filters: ListingFilter = Depends()):
        return await ListingQueryService(self.db).query_listings(
            filters, ListingAudience.OWNER, self.ctx
        )

    @router.post("/", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
    @safe_handler
    async def create(self, request: Request, data: ListingCreateSchema):
        return await ListingService(self.db).create_listing(self.ctx, data)

    @router.get("/{listing_id}", response_model=ListingOut)
    @safe_handler
    async def get(self, request: Request, listing_id: uuid.UUID):
        return await ListingService(self.db).get_listing(listing_id, self.ctx)

    @router.patch("/{listing_id}", response_model=ListingOut)
    @safe_handler
    async def edit(
        self, request: Request, listing_id: uuid.UUID, data: ListingUpdateSchema
    ):
        return await ListingService(self.db).edit_listing(listing_id, self.ctx, data)

    @router.patch("/{listing_id}/status", response_model=ListingOut)
    @safe_handler
    async def set_status(
        self, request: Request, listing_id: uuid.UUID, data: ListingStatusSchema
    ):
        return await LifecycleService(self.db).set_listing_status(
            listing_id, self.ctx, data.status
        )

    @router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
    @safe_handler
    async def delete(self, request: Request, listing_id: uuid.UUID):
        await LifecycleService(self.db).delete_listing(listing_id, self.ctx)

    @router.post(
        "/{listing_id}/offers",
        response_model=RentalOut,
        status_code=status.HTTP_201_CREATED,
    )
    @safe_handler
    async def offer(
        self, request: Request, listing_id: uuid.UUID, data: OfferCreateSchema
    ):
        return await LifecycleService(self.db).create_offer(
            listing_id, self.ctx, data.tenant_id
        )

    @router.get("/{listing_id}/tenant", response_model=UserBriefOut)
    @safe_handler
    async def current_tenant(self, request: Request, listing_id: uuid.UUID):
        return await RentalService(self.db).current_tenant(listing_id, self.ctx)
