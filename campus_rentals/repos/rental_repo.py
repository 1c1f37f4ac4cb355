import uuid
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from models.enums import OPEN_RENTAL_STATUSES, RentalStatus
from models.models import Rental


class RentalRepo:
    def __init__(self, db):
        self.db = db

    def _with_relations(self, stmt):
        return stmt.options(
            selectinload(Rental.listing),
            selectinload(Rental.tenant),
        ).execution_options(populate_existing=True)

    async def get_by_id(self, rental_id: uuid.UUID) -> Optional[Rental]:
        stmt = self._with_relations(select(Rental).where(Rental.id == rental_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_open_for_listing(self, listing_id: uuid.UUID) -> Optional[Rental]:
        stmt = self._with_relations(
            select(Rental).where(
                Rental.listing_id == listing_id,
                Rental.status.in_(list(OPEN_RENTAL_STATUSES)),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def add_pending(
        self, *, listing_id: uuid.UUID, owner_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> Rental:
        """Insert a pending rental and flush. The caller owns the transaction."""
        rental = Rental(
            listing_id=listing_id,
            owner_id=owner_id,
            tenant_id=tenant_id,
            status=RentalStatus.PENDING,
        )
        self.db.add(rental)
        await self.db.flush()
        return rental

    async def compare_and_set_status(
        self,
        rental_id: uuid.UUID,
        *,
        expected: RentalStatus,
        new_status: RentalStatus,
        **values,
    ) -> bool:
        stmt = (
            update(Rental)
            .where(Rental.id == rental_id, Rental.status == expected)
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def list_for_tenant(
        self, tenant_id: uuid.UUID, statuses: Iterable[RentalStatus]
    ) -> List[Rental]:
        stmt = self._with_relations(
            select(Rental)
            .where(Rental.tenant_id == tenant_id, Rental.status.in_(list(statuses)))
            .order_by(Rental.created_at.desc(), Rental.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_owner(
        self, owner_id: uuid.UUID, statuses: Iterable[RentalStatus]
    ) -> List[Rental]:
        stmt = self._with_relations(
            select(Rental)
            .where(Rental.owner_id == owner_id, Rental.status.in_(list(statuses)))
            .order_by(Rental.created_at.desc(), Rental.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

