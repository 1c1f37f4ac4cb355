from uuid import UUID

from sqlalchemy import select

from models.enums import RentalStatus
from models.models import RentalStatusHistory


class RentalStatusHistoryRepo:
    def __init__(self, db):
        self.db = db

    async def log_status_change(
        self,
        *,
        rental_id: UUID,
        old_status: RentalStatus | None,
        new_status: RentalStatus,
        user_id: UUID | None = None,
    ) -> RentalStatusHistory:
        """Stage a history row inside the caller's transaction."""
        log = RentalStatusHistory(
            rental_id=rental_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=user_id,
        )
        self.db.add(log)
        await self.db.flush()
        return log

    async def list_for_rental(self, rental_id: UUID) -> list[RentalStatusHistory]:
        result = await self.db.execute(
            select(RentalStatusHistory)
            .where(RentalStatusHistory.rental_id == rental_id)
            .order_by(RentalStatusHistory.changed_at, RentalStatusHistory.id)
        )
        return list(result.scalars().all())
