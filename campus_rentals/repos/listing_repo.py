import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import ListingStatus
from models.models import Favorite, Listing


class ListingRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(
        self, listing_id: uuid.UUID, include_deleted: bool = False
    ) -> Optional[Listing]:
        stmt = (
            select(Listing)
            .where(Listing.id == listing_id)
            .execution_options(populate_existing=True)
        )
        if not include_deleted:
            stmt = stmt.where(Listing.deleted_at.is_(None))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: dict) -> Listing:
        listing = Listing(**data)
        self.db.add(listing)
        try:
            await self.db.commit()
            await self.db.refresh(listing)
            return listing
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def compare_and_set_status(
        self,
        listing_id: uuid.UUID,
        *,
        expected: Iterable[ListingStatus],
        new_status: ListingStatus,
        owner_id: uuid.UUID | None = None,
    ) -> bool:
        """Move the listing to ``new_status`` only if it is still in ``expected``.

        Returns False when no row matched. Does not commit.
        """
        stmt = (
            update(Listing)
            .where(
                Listing.id == listing_id,
                Listing.status.in_(list(expected)),
                Listing.deleted_at.is_(None),
            )
            .values(status=new_status, version=Listing.version + 1)
            .execution_options(synchronize_session=False)
        )
        if owner_id is not None:
            stmt = stmt.where(Listing.owner_id == owner_id)
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def soft_delete(
        self,
        listing_id: uuid.UUID,
        *,
        owner_id: uuid.UUID,
        expected: Iterable[ListingStatus],
    ) -> bool:
        stmt = (
            update(Listing)
            .where(
                Listing.id == listing_id,
                Listing.owner_id == owner_id,
                Listing.status.in_(list(expected)),
                Listing.deleted_at.is_(None),
            )
            .values(deleted_at=datetime.now(timezone.utc), version=Listing.version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def apply_changes(self, listing: Listing, changes: dict) -> Listing:
        """Apply descriptive changes through the ORM so the version check runs on flush.

        Flushes only. The caller owns the transaction.
        """
        for field, value in changes.items():
            setattr(listing, field, value)
        await self.db.flush()
        return listing

    async def count(self, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(
            stmt.order_by(None).subquery()
        )
        result = await self.db.execute(count_stmt)
        return result.scalar_one()

    async def fetch_page(self, stmt: Select, *, offset: int, limit: int) -> List[Listing]:
        result = await self.db.execute(stmt.offset(offset).limit(limit))
        return list(result.scalars().all())

    def base_query(self) -> Select:
        return select(Listing).where(Listing.deleted_at.is_(None))

    @staticmethod
    def text_match(stmt: Select, term: str) -> Select:
        """Case-insensitive substring match; ``%`` and ``_`` in ``term`` are literal."""
        return stmt.where(
            or_(
                Listing.title.icontains(term, autoescape=True),
                Listing.description.icontains(term, autoescape=True),
                Listing.address.icontains(term, autoescape=True),
            )
        )

    @staticmethod
    def favorited_by(stmt: Select, tenant_id: uuid.UUID) -> Select:
        return stmt.join(
            Favorite,
            (Favorite.listing_id == Listing.id) & (Favorite.tenant_id == tenant_id),
        )

    async def favorite_ids(
        self, tenant_id: uuid.UUID, listing_ids: Sequence[uuid.UUID]
    ) -> set[uuid.UUID]:
        if not listing_ids:
            return set()
        result = await self.db.execute(
            select(Favorite.listing_id).where(
                Favorite.tenant_id == tenant_id,
                Favorite.listing_id.in_(list(listing_ids)),
            )
        )
        return set(result.scalars().all())
