import hashlib
import json
import logging

from sqlalchemy import Select, nulls_last

from core.cache import listing_cache
from core.check_permission import CheckRolePermission
from core.errors import InvalidInput, InvalidRange
from core.mapper import ORMMapper
from core.paginate import PaginatePage
from core.settings import settings
from models.enums import ListingAudience, ListingStatus, SortKey, SortOrder
from models.models import Listing
from repos.listing_repo import ListingRepo
from schemas.schema import ListingFilter, ListingOut, ListingPageOut, RequestContext

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    SortKey.CREATED_AT: Listing.created_at,
    SortKey.PRICE: Listing.price,
    SortKey.AREA: Listing.area,
    SortKey.BEDROOM_COUNT: Listing.bedroom_count,
    SortKey.BATHROOM_COUNT: Listing.bathroom_count,
    SortKey.DISTANCE_TO_CAMPUS_A: Listing.distance_campus_a_km,
    SortKey.DISTANCE_TO_CAMPUS_B: Listing.distance_campus_b_km,
}

NULLABLE_SORT_KEYS = {SortKey.DISTANCE_TO_CAMPUS_A, SortKey.DISTANCE_TO_CAMPUS_B}


class ListingQueryService:
    """Filtered, sorted and paged listing views.

    Read-only. Filters are validated in full before the first query runs, so a
    bad request never costs a database round trip.
    """

    def __init__(self, db):
        self.repo: ListingRepo = ListingRepo(db)
        self.paginate: PaginatePage = PaginatePage(per_page=settings.PAGE_SIZE)
        self.mapper: ORMMapper = ORMMapper()
        self.permission: CheckRolePermission = CheckRolePermission()

    def validate(self, filters: ListingFilter):
        for field in (
            "price_min",
            "price_max",
            "area_min",
            "area_max",
            "min_bedrooms",
            "min_bathrooms",
        ):
            value = getattr(filters, field)
            if value is not None and value < 0:
                raise InvalidInput(f"{field} cannot be negative", field=field)

        for name, low, high in (
            ("price", filters.price_min, filters.price_max),
            ("area", filters.area_min, filters.area_max),
        ):
            if low is not None and high is not None and low > high:
                raise InvalidRange(name, low, high)

        self.paginate.check_page(filters.page)

    def _apply_filters(self, stmt: Select, filters: ListingFilter) -> Select:
        if filters.q and filters.q.strip():
            stmt = self.repo.text_match(stmt, filters.q.strip())
        if filters.listing_type is not None:
            stmt = stmt.where(Listing.listing_type == filters.listing_type)
        if filters.price_min is not None:
            stmt = stmt.where(Listing.price >= filters.price_min)
        if filters.price_max is not None:
            stmt = stmt.where(Listing.price <= filters.price_max)
        if filters.area_min is not None:
            stmt = stmt.where(Listing.area >= filters.area_min)
        if filters.area_max is not None:
            stmt = stmt.where(Listing.area <= filters.area_max)
        if filters.min_bedrooms is not None:
            stmt = stmt.where(Listing.bedroom_count >= filters.min_bedrooms)
        if filters.min_bathrooms is not None:
            stmt = stmt.where(Listing.bathroom_count >= filters.min_bathrooms)
        if filters.furnished is not None:
            stmt = stmt.where(Listing.is_furnished.is_(filters.furnished))
        if filters.pets_allowed is not None:
            stmt = stmt.where(Listing.allows_pets.is_(filters.pets_allowed))
        if filters.garage is not None:
            stmt = stmt.where(Listing.has_garage.is_(filters.garage))
        return stmt

    def _apply_sort(self, stmt: Select, filters: ListingFilter) -> Select:
        column = SORT_COLUMNS[filters.sort_by]
        ordered = column.desc() if filters.order == SortOrder.DESC else column.asc()
        if filters.sort_by in NULLABLE_SORT_KEYS:
            ordered = nulls_last(ordered)
        return stmt.order_by(ordered, Listing.id.asc())

    async def _scoped_query(
        self, filters: ListingFilter, audience: ListingAudience, ctx: RequestContext
    ) -> Select:
        stmt = self.repo.base_query()
        if audience == ListingAudience.OWNER:
            await self.permission.check_owner(ctx)
            stmt = stmt.where(Listing.owner_id == ctx.actor_id)
            if filters.status is not None:
                stmt = stmt.where(Listing.status == filters.status)
        else:
            stmt = stmt.where(Listing.status == ListingStatus.AVAILABLE)
            if audience == ListingAudience.FAVORITES:
                stmt = self.repo.favorited_by(stmt, ctx.actor_id)
        return stmt

    @staticmethod
    def _fingerprint(filters: ListingFilter) -> str:
        raw = json.dumps(filters.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(raw.encode()).hexdigest()

    async def query_listings(
        self,
        filters: ListingFilter,
        audience: ListingAudience,
        ctx: RequestContext,
    ) -> ListingPageOut:
        self.validate(filters)
        stmt = await self._scoped_query(filters, audience, ctx)

        page = None
        fingerprint = None
        if audience == ListingAudience.BROWSE:
            fingerprint = self._fingerprint(filters)
            cached = await listing_cache.get_page(fingerprint)
            if cached:
                logger.debug("Browse cache hit %s", fingerprint)
                page = ListingPageOut.model_validate(cached)

        if page is None:
            stmt = self._apply_sort(self._apply_filters(stmt, filters), filters)
            total_items = await self.repo.count(stmt)
            listings = await self.repo.fetch_page(
                stmt,
                offset=self.paginate.offset(filters.page),
                limit=self.paginate.per_page,
            )
            page = ListingPageOut(
                items=self.mapper.many(listings, ListingOut),
                total_pages=self.paginate.total_pages(total_items),
                total_items=total_items,
                page=filters.page,
            )
            if fingerprint is not None:
                await listing_cache.set_page(fingerprint, page.model_dump(mode="json"))

        return await self._mark_favorites(page, ctx)

    async def _mark_favorites(
        self, page: ListingPageOut, ctx: RequestContext
    ) -> ListingPageOut:
        favorite_ids = await self.repo.favorite_ids(
            ctx.actor_id, [item.id for item in page.items]
        )
        items = [
            item.model_copy(update={"is_favorite": item.id in favorite_ids})
            for item in page.items
        ]
        return page.model_copy(update={"items": items})
