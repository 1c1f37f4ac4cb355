import uuid

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.models import Favorite


class FavoriteRepo:
    def __init__(self, db):
        self.db = db

    async def remove(self, tenant_id: uuid.UUID, listing_id: uuid.UUID) -> bool:
        try:
            result = await self.db.execute(
                delete(Favorite).where(
                    Favorite.tenant_id == tenant_id,
                    Favorite.listing_id == listing_id,
                )
            )
            await self.db.commit()
            return result.rowcount > 0
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def add(self, tenant_id: uuid.UUID, listing_id: uuid.UUID) -> bool:
        """Insert the pair. Returns False when a concurrent insert got there first."""
        self.db.add(Favorite(tenant_id=tenant_id, listing_id=listing_id))
        try:
            await self.db.commit()
            return True
        except IntegrityError:
            await self.db.rollback()
            return False
        except SQLAlchemyError:
            await self.db.rollback()
            raise
