import uuid
from typing import Optional

from sqlalchemy import select

from models.enums import UserRole
from models.models import User


class AuthRepo:
    def __init__(self, db):
        self.db = db

    async def by_id(self, user_id: uuid.UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_role(self, role: UserRole) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.role == role).order_by(User.username)
        )
        return list(result.scalars().all())
