import uuid
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from schemas.schema import MyRentalsOut, RentalHistoryOut, RentalOut, RequestContext
from services.lifecycle_service import LifecycleService
from services.rental_service import RentalService

router = APIRouter(tags=["Rentals"])


@cbv(router=router)
class RentalRoutes:
    db: AsyncSession = Depends(get_db_async)
    ctx: RequestContext = Depends(get_current_user)

    @router.get("/mine", response_model=MyRentalsOut)
    @safe_handler
    async def mine(self, request: Request):
        return await RentalService(self.db).my_rentals(self.ctx)

    @router.post("/{rental_id}/confirm", response_model=RentalOut)
    @safe_handler
    async def confirm(self, request: Request, rental_id: uuid.UUID):
        return await LifecycleService(self.db).confirm_offer(rental_id, self.ctx)

    @router.post("/{rental_id}/cancel", response_model=RentalOut)
    @safe_handler
    async def cancel(self, request: Request, rental_id: uuid.UUID):
        return await LifecycleService(self.db).cancel_offer(rental_id, self.ctx)

    @router.post("/{rental_id}/finalize", response_model=RentalOut)
    @safe_handler
    async def finalize(self, request: Request, rental_id: uuid.UUID):
        return await LifecycleService(self.db).finalize_rental(rental_id, self.ctx)

    @router.get("/{rental_id}/history", response_model=List[RentalHistoryOut])
    @safe_handler
    async def history(self, request: Request, rental_id: uuid.UUID):
        return await RentalService(self.db).rental_history(rental_id, self.ctx)
