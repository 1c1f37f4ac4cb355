from models.enums import UserRole
from schemas.schema import RequestContext

from .errors import Unauthorized


class CheckRolePermission:
    async def check_owner(self, ctx: RequestContext):
        if ctx.role != UserRole.OWNER:
            raise Unauthorized("Only property owners can perform this action")

    async def check_listing_owner(self, ctx: RequestContext, listing):
        if listing.owner_id != ctx.actor_id:
            raise Unauthorized("You do not own this listing")

    async def check_rental_party(self, ctx: RequestContext, rental):
        if ctx.actor_id not in {rental.owner_id, rental.tenant_id}:
            raise Unauthorized("You are not a party to this rental")
