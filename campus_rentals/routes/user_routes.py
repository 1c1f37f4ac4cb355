from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from schemas.schema import RequestContext, UserBriefOut
from services.user_service import UserService

router = APIRouter(tags=["Users"])


@cbv(router=router)
class UserRoutes:
    db: AsyncSession = Depends(get_db_async)
    ctx: RequestContext = Depends(get_current_user)

    @router.get("/tenants", response_model=List[UserBriefOut])
    @safe_handler
    async def tenants(self, request: Request):
        return await UserService(self.db).list_tenants(self.ctx)
