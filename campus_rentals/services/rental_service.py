import uuid

from core.check_permission import CheckRolePermission
from core.errors import NotFound, Unauthorized
from core.mapper import ORMMapper
from models.enums import CLOSED_RENTAL_STATUSES, RentalStatus
from repos.listing_repo import ListingRepo
from repos.rental_log_history_repo import RentalStatusHistoryRepo
from repos.rental_repo import RentalRepo
from schemas.schema import (
    MyRentalsOut,
    RentalHistoryOut,
    RentalOut,
    RequestContext,
    UserBriefOut,
)


class RentalService:
    def __init__(self, db):
        self.repo: RentalRepo = RentalRepo(db)
        self.listing_repo: ListingRepo = ListingRepo(db)
        self.history_repo: RentalStatusHistoryRepo = RentalStatusHistoryRepo(db)
        self.mapper: ORMMapper = ORMMapper()
        self.permission: CheckRolePermission = CheckRolePermission()

    async def my_rentals(self, ctx: RequestContext) -> MyRentalsOut:
        """Rentals the caller rents as a tenant, or rents out as an owner."""
        lookup = self.repo.list_for_owner if ctx.is_owner else self.repo.list_for_tenant
        rentals = await lookup(ctx.actor_id, list(RentalStatus))

        grouped = MyRentalsOut()
        for rental in rentals:
            out = self.mapper.one(rental, RentalOut)
            if rental.status == RentalStatus.PENDING:
                grouped.pending.append(out)
            elif rental.status == RentalStatus.ACTIVE:
                grouped.active.append(out)
            elif rental.status in CLOSED_RENTAL_STATUSES:
                grouped.past.append(out)
        return grouped

    async def current_tenant(
        self, listing_id: uuid.UUID, ctx: RequestContext
    ) -> UserBriefOut:
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise NotFound("Listing", listing_id)

        rental = await self.repo.get_open_for_listing(listing_id)
        if rental is None:
            if listing.owner_id != ctx.actor_id:
                raise Unauthorized("You are not a party to this listing's rental")
            raise NotFound("Open rental for listing", listing_id)

        await self.permission.check_rental_party(ctx, rental)
        return self.mapper.one(rental.tenant, UserBriefOut)

    async def rental_history(
        self, rental_id: uuid.UUID, ctx: RequestContext
    ) -> list[RentalHistoryOut]:
        rental = await self.repo.get_by_id(rental_id)
        if not rental:
            raise NotFound("Rental", rental_id)
        await self.permission.check_rental_party(ctx, rental)

        rows = await self.history_repo.list_for_rental(rental_id)
        return self.mapper.many(rows, RentalHistoryOut)
