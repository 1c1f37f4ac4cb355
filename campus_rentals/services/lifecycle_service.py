import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from core.cache import listing_cache
from core.check_permission import CheckRolePermission
from core.errors import Conflict, DomainError, InvalidInput, NotFound, Unauthorized
from core.event_publish import publish_event
from core.mapper import ORMMapper
from core.validate_enum import validate_enum
from models.enums import (
    EDITABLE_STATUSES,
    OWNER_SETTABLE_STATUSES,
    ListingStatus,
    RentalStatus,
    UserRole,
)
from models.models import Listing, Rental
from repos.auth_repo import AuthRepo
from repos.listing_repo import ListingRepo
from repos.rental_log_history_repo import RentalStatusHistoryRepo
from repos.rental_repo import RentalRepo
from schemas.schema import ListingOut, RentalOut, RequestContext

logger = logging.getLogger(__name__)


class LifecycleService:
    """Sole writer of listing and rental status.

    Each transition runs in one transaction: the listing compare-and-set, the
    rental write and the history row commit together or not at all. Events and
    cache invalidation follow the commit and never undo it.
    """

    def __init__(self, db):
        self.db = db
        self.listing_repo: ListingRepo = ListingRepo(db)
        self.rental_repo: RentalRepo = RentalRepo(db)
        self.history_repo: RentalStatusHistoryRepo = RentalStatusHistoryRepo(db)
        self.user_repo: AuthRepo = AuthRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()
        self.mapper: ORMMapper = ORMMapper()

    @asynccontextmanager
    async def _transition(self, action: str):
        try:
            yield
            await self.db.commit()
        except DomainError:
            await self.db.rollback()
            raise
        except (IntegrityError, OperationalError, StaleDataError) as e:
            await self.db.rollback()
            logger.info("%s lost a concurrent update: %s", action, e)
            raise Conflict(f"Could not {action}: the record was changed concurrently") from e
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def _after_commit(self, event_name: str, data: dict):
        await listing_cache.invalidate()
        await publish_event(event_name, data)

    async def _get_listing(self, listing_id: uuid.UUID) -> Listing:
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise NotFound("Listing", listing_id)
        return listing

    async def _get_rental(self, rental_id: uuid.UUID) -> Rental:
        rental = await self.rental_repo.get_by_id(rental_id)
        if not rental:
            raise NotFound("Rental", rental_id)
        return rental

    async def _rental_out(self, rental_id: uuid.UUID) -> RentalOut:
        return self.mapper.one(await self._get_rental(rental_id), RentalOut)

    def check_editable(self, listing: Listing):
        if listing.status not in EDITABLE_STATUSES:
            raise Conflict(
                f"Listing is {listing.status.value} and cannot be changed until the rental closes"
            )

    async def create_offer(
        self, listing_id: uuid.UUID, ctx: RequestContext, tenant_id: uuid.UUID
    ) -> RentalOut:
        listing = await self._get_listing(listing_id)
        await self.permission.check_listing_owner(ctx, listing)

        if tenant_id == ctx.actor_id:
            raise InvalidInput("You cannot offer a listing to yourself", field="tenant_id")
        tenant = await self.user_repo.by_id(tenant_id)
        if not tenant:
            raise NotFound("User", tenant_id)
        if tenant.role != UserRole.TENANT:
            raise InvalidInput("Offers can only be made to tenants", field="tenant_id")

        if listing.status != ListingStatus.AVAILABLE:
            raise Conflict(f"Listing is {listing.status.value} and cannot be offered")

        async with self._transition("create the offer"):
            claimed = await self.listing_repo.compare_and_set_status(
                listing_id,
                expected={ListingStatus.AVAILABLE},
                new_status=ListingStatus.OFFERED,
                owner_id=ctx.actor_id,
            )
            if not claimed:
                raise Conflict("Listing was claimed by another offer")
            rental = await self.rental_repo.add_pending(
                listing_id=listing_id, owner_id=ctx.actor_id, tenant_id=tenant_id
            )
            rental_id = rental.id
            await self.history_repo.log_status_change(
                rental_id=rental_id,
                old_status=None,
                new_status=RentalStatus.PENDING,
                user_id=ctx.actor_id,
            )

        logger.info("Listing %s offered to tenant %s", listing_id, tenant_id)
        await self._after_commit(
            "rental.offered",
            {
                "rental_id": str(rental_id),
                "listing_id": str(listing_id),
                "owner_id": str(ctx.actor_id),
                "tenant_id": str(tenant_id),
            },
        )
        return await self._rental_out(rental_id)

    async def confirm_offer(self, rental_id: uuid.UUID, ctx: RequestContext) -> RentalOut:
        rental = await self._get_rental(rental_id)
        if ctx.actor_id != rental.tenant_id:
            raise Unauthorized("Only the named tenant can confirm this offer")
        if rental.status != RentalStatus.PENDING:
            raise Conflict(f"Rental is {rental.status.value} and cannot be confirmed")

        async with self._transition("confirm the offer"):
            moved = await self.rental_repo.compare_and_set_status(
                rental_id,
                expected=RentalStatus.PENDING,
                new_status=RentalStatus.ACTIVE,
                started_at=datetime.now(timezone.utc),
            )
            if not moved:
                raise Conflict("Rental is no longer pending")
            rented = await self.listing_repo.compare_and_set_status(
                rental.listing_id,
                expected={ListingStatus.OFFERED},
                new_status=ListingStatus.RENTED,
            )
            if not rented:
                raise Conflict("Listing is no longer offered")
            await self.history_repo.log_status_change(
                rental_id=rental_id,
                old_status=RentalStatus.PENDING,
                new_status=RentalStatus.ACTIVE,
                user_id=ctx.actor_id,
            )

        logger.info("Rental %s confirmed by tenant %s", rental_id, ctx.actor_id)
        await self._after_commit(
            "rental.confirmed",
            {"rental_id": str(rental_id), "listing_id": str(rental.listing_id)},
        )
        return await self._rental_out(rental_id)

    async def cancel_offer(self, rental_id: uuid.UUID, ctx: RequestContext) -> RentalOut:
        rental = await self._get_rental(rental_id)
        await self.permission.check_rental_party(ctx, rental)
        if rental.status != RentalStatus.PENDING:
            raise Conflict(f"Rental is {rental.status.value} and cannot be cancelled")

        async with self._transition("cancel the offer"):
            moved = await self.rental_repo.compare_and_set_status(
                rental_id,
                expected=RentalStatus.PENDING,
                new_status=RentalStatus.CANCELLED,
                cancelled_at=datetime.now(timezone.utc),
                cancelled_by_id=ctx.actor_id,
            )
            if not moved:
                raise Conflict("Rental is no longer pending")
            released = await self.listing_repo.compare_and_set_status(
                rental.listing_id,
                expected={ListingStatus.OFFERED},
                new_status=ListingStatus.AVAILABLE,
            )
            if not released:
                raise Conflict("Listing is no longer offered")
            await self.history_repo.log_status_change(
                rental_id=rental_id,
                old_status=RentalStatus.PENDING,
                new_status=RentalStatus.CANCELLED,
                user_id=ctx.actor_id,
            )

        logger.info("Rental %s cancelled by %s", rental_id, ctx.actor_id)
        await self._after_commit(
            "rental.cancelled",
            {
                "rental_id": str(rental_id),
                "listing_id": str(rental.listing_id),
                "cancelled_by": str(ctx.actor_id),
            },
        )
        return await self._rental_out(rental_id)

    async def finalize_rental(self, rental_id: uuid.UUID, ctx: RequestContext) -> RentalOut:
        rental = await self._get_rental(rental_id)
        if ctx.actor_id != rental.owner_id:
            raise Unauthorized("Only the owner can finalize this rental")
        if rental.status != RentalStatus.ACTIVE:
            raise Conflict(f"Rental is {rental.status.value} and cannot be finalized")

        async with self._transition("finalize the rental"):
            moved = await self.rental_repo.compare_and_set_status(
                rental_id,
                expected=RentalStatus.ACTIVE,
                new_status=RentalStatus.FINISHED,
                ended_at=datetime.now(timezone.utc),
            )
            if not moved:
                raise Conflict("Rental is no longer active")
            released = await self.listing_repo.compare_and_set_status(
                rental.listing_id,
                expected={ListingStatus.RENTED},
                new_status=ListingStatus.AVAILABLE,
            )
            if not released:
                raise Conflict("Listing is no longer rented")
            await self.history_repo.log_status_change(
                rental_id=rental_id,
                old_status=RentalStatus.ACTIVE,
                new_status=RentalStatus.FINISHED,
                user_id=ctx.actor_id,
            )

        logger.info("Rental %s finalized", rental_id)
        await self._after_commit(
            "rental.finalized",
            {"rental_id": str(rental_id), "listing_id": str(rental.listing_id)},
        )
        return await self._rental_out(rental_id)

    def settable_status(self, new_status) -> ListingStatus:
        target = validate_enum(new_status, ListingStatus, field="status")
        if target not in OWNER_SETTABLE_STATUSES:
            raise InvalidInput(
                "Status can only be set to available or unavailable", field="status"
            )
        return target

    async def apply_edit(
        self,
        listing: Listing,
        ctx: RequestContext,
        changes: dict,
        target: ListingStatus | None = None,
    ) -> None:
        """Write descriptive changes and an optional status toggle together.

        Both parts must already be validated. Either all of it commits or none.
        """
        listing_id = listing.id
        current = listing.status
        async with self._transition("edit the listing"):
            if changes:
                await self.listing_repo.apply_changes(listing, changes)
            if target is not None:
                changed = await self.listing_repo.compare_and_set_status(
                    listing_id,
                    expected={current},
                    new_status=target,
                    owner_id=ctx.actor_id,
                )
                if not changed:
                    raise Conflict("Listing status changed concurrently")

        if changes:
            logger.info("Listing %s edited: %s", listing_id, sorted(changes))
            await self._after_commit("listing.updated", {"listing_id": str(listing_id)})
        if target is not None:
            logger.info("Listing %s status %s -> %s", listing_id, current.value, target.value)
            await self._after_commit(
                "listing.status_changed",
                {
                    "listing_id": str(listing_id),
                    "old_status": current.value,
                    "new_status": target.value,
                },
            )

    async def set_listing_status(
        self, listing_id: uuid.UUID, ctx: RequestContext, new_status
    ) -> ListingOut:
        target = self.settable_status(new_status)

        listing = await self._get_listing(listing_id)
        await self.permission.check_listing_owner(ctx, listing)
        self.check_editable(listing)
        if listing.status == target:
            raise Conflict(f"Listing is already {target.value}")

        await self.apply_edit(listing, ctx, {}, target)
        return self.mapper.one(await self._get_listing(listing_id), ListingOut)

    async def delete_listing(self, listing_id: uuid.UUID, ctx: RequestContext) -> None:
        listing = await self._get_listing(listing_id)
        await self.permission.check_listing_owner(ctx, listing)
        if listing.status not in EDITABLE_STATUSES:
            raise Conflict(
                f"Listing is {listing.status.value} and cannot be deleted while a rental is open"
            )

        async with self._transition("delete the listing"):
            withdrawn = await self.listing_repo.soft_delete(
                listing_id, owner_id=ctx.actor_id, expected=EDITABLE_STATUSES
            )
            if not withdrawn:
                raise Conflict("Listing status changed concurrently")

        logger.info("Listing %s withdrawn by %s", listing_id, ctx.actor_id)
        await self._after_commit("listing.deleted", {"listing_id": str(listing_id)})
