import logging
import uuid

from core.errors import NotFound
from repos.favorite_repo import FavoriteRepo
from repos.listing_repo import ListingRepo
from schemas.schema import FavoriteToggleOut, RequestContext

logger = logging.getLogger(__name__)


class FavoriteService:
    def __init__(self, db):
        self.repo: FavoriteRepo = FavoriteRepo(db)
        self.listing_repo: ListingRepo = ListingRepo(db)

    async def toggle_favorite(
        self, ctx: RequestContext, listing_id: uuid.UUID
    ) -> FavoriteToggleOut:
        """Flip membership and return the new state.

        Delete first; if nothing was deleted, insert. An insert that loses a
        race against a concurrent insert still leaves the pair present.
        """
        listing = await self.listing_repo.get_by_id(listing_id)
        if not listing:
            raise NotFound("Listing", listing_id)

        if await self.repo.remove(ctx.actor_id, listing_id):
            is_favorite = False
        else:
            inserted = await self.repo.add(ctx.actor_id, listing_id)
            if not inserted:
                logger.info(
                    "Favorite %s/%s inserted concurrently", ctx.actor_id, listing_id
                )
            is_favorite = True

        return FavoriteToggleOut(listing_id=listing_id, is_favorite=is_favorite)
