import logging
import uuid

from core.cache import listing_cache
from core.check_permission import CheckRolePermission
from core.errors import Conflict, InvalidInput, NotFound, Unauthorized
from core.event_publish import publish_event
from core.location import campus_distances, check_coordinates
from core.mapper import ORMMapper
from core.settings import settings
from models.enums import ListingStatus
from models.models import Listing
from repos.listing_repo import ListingRepo
from schemas.schema import (
    ListingCreateSchema,
    ListingOut,
    ListingUpdateSchema,
    RequestContext,
)

from .lifecycle_service import LifecycleService

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "title",
    "listing_type",
    "price",
    "area",
    "bedroom_count",
    "bathroom_count",
    "is_furnished",
    "allows_pets",
    "has_garage",
    "address",
    "images",
)


class ListingService:
    def __init__(self, db):
        self.repo: ListingRepo = ListingRepo(db)
        self.lifecycle: LifecycleService = LifecycleService(db)
        self.mapper: ORMMapper = ORMMapper()
        self.permission: CheckRolePermission = CheckRolePermission()

    def validate_fields(self, fields: dict):
        """Check whichever descriptive fields are present in ``fields``."""
        for name in REQUIRED_FIELDS:
            if name in fields and fields[name] is None:
                raise InvalidInput(f"{name} cannot be empty", field=name)

        if "title" in fields and not fields["title"]:
            raise InvalidInput("Title cannot be empty", field="title")
        if "address" in fields and not fields["address"]:
            raise InvalidInput("Address cannot be empty", field="address")
        if "price" in fields and fields["price"] <= 0:
            raise InvalidInput("Price must be greater than zero", field="price")
        if "area" in fields and fields["area"] <= 0:
            raise InvalidInput("Area must be greater than zero", field="area")
        if "bedroom_count" in fields and fields["bedroom_count"] < 1:
            raise InvalidInput("A listing needs at least one bedroom", field="bedroom_count")
        if "bathroom_count" in fields and fields["bathroom_count"] < 1:
            raise InvalidInput(
                "A listing needs at least one bathroom", field="bathroom_count"
            )
        if "images" in fields:
            count = len(fields["images"])
            if not 1 <= count <= settings.MAX_LISTING_IMAGES:
                raise InvalidInput(
                    f"A listing needs between 1 and {settings.MAX_LISTING_IMAGES} images",
                    field="images",
                )

    async def _listing_out(self, listing: Listing, ctx: RequestContext) -> ListingOut:
        favorites = await self.repo.favorite_ids(ctx.actor_id, [listing.id])
        return self.mapper.one(listing, ListingOut, is_favorite=listing.id in favorites)

    async def _after_write(self, event_name: str, listing_id: uuid.UUID):
        await listing_cache.invalidate()
        await publish_event(event_name, {"listing_id": str(listing_id)})

    async def create_listing(
        self, ctx: RequestContext, data: ListingCreateSchema
    ) -> ListingOut:
        await self.permission.check_owner(ctx)

        fields = data.model_dump()
        self.validate_fields(fields)
        check_coordinates(fields["latitude"], fields["longitude"])
        fields.update(campus_distances(fields["latitude"], fields["longitude"]))
        fields["owner_id"] = ctx.actor_id
        fields["status"] = ListingStatus.AVAILABLE

        listing = await self.repo.create(fields)
        logger.info("Listing %s created by %s", listing.id, ctx.actor_id)
        await self._after_write("listing.created", listing.id)
        return self.mapper.one(listing, ListingOut)

    async def edit_listing(
        self, listing_id: uuid.UUID, ctx: RequestContext, data: ListingUpdateSchema
    ) -> ListingOut:
        changes = data.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)
        if not changes and new_status is None:
            raise InvalidInput("No fields to update")
        target = None
        if new_status is not None:
            target = self.lifecycle.settable_status(new_status)

        listing = await self.repo.get_by_id(listing_id)
        if not listing:
            raise NotFound("Listing", listing_id)
        await self.permission.check_listing_owner(ctx, listing)
        self.lifecycle.check_editable(listing)

        self.validate_fields(changes)
        if "latitude" in changes or "longitude" in changes:
            latitude = changes.get("latitude", listing.latitude)
            longitude = changes.get("longitude", listing.longitude)
            check_coordinates(latitude, longitude)
            changes.update(campus_distances(latitude, longitude))

        if target == listing.status:
            if not changes:
                raise Conflict(f"Listing is already {target.value}")
            target = None

        await self.lifecycle.apply_edit(listing, ctx, changes, target)
        listing = await self.repo.get_by_id(listing_id)
        return await self._listing_out(listing, ctx)

    async def get_listing(self, listing_id: uuid.UUID, ctx: RequestContext) -> ListingOut:
        listing = await self.repo.get_by_id(listing_id)
        if not listing:
            raise NotFound("Listing", listing_id)

        if (
            listing.status != ListingStatus.AVAILABLE
            and listing.owner_id != ctx.actor_id
            and not ctx.is_tenant
        ):
            raise Unauthorized("This listing is not available")

        return await self._listing_out(listing, ctx)
