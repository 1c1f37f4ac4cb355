"""Favorites toggle.

Invariants:
    - Toggle flips membership and returns the new state
    - Listing status never blocks favoriting
    - Missing or withdrawn listings raise NotFound
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from conftest import ctx_for
from core.errors import NotFound
from models.enums import ListingStatus, UserRole
from models.models import Favorite
from services.favorite_service import FavoriteService


async def test_toggle_twice_returns_true_then_false(test_db, make_user, make_listing):
    owner = await make_user(UserRole.OWNER)
    tenant = await make_user(UserRole.TENANT)
    listing = await make_listing(owner)
    service = FavoriteService(test_db)

    first = await service.toggle_favorite(ctx_for(tenant), listing.id)
    second = await service.toggle_favorite(ctx_for(tenant), listing.id)

    assert first.is_favorite is True
    assert second.is_favorite is False
    count = await test_db.scalar(select(func.count()).select_from(Favorite))
    assert count == 0


async def test_rented_listing_can_still_be_favorited(test_db, make_user, make_listing):
    owner = await make_user(UserRole.OWNER)
    tenant = await make_user(UserRole.TENANT)
    listing = await make_listing(owner, status=ListingStatus.RENTED)

    out = await FavoriteService(test_db).toggle_favorite(ctx_for(tenant), listing.id)

    assert out.is_favorite is True


async def test_toggle_missing_or_withdrawn_listing_is_not_found(
    test_db, make_user, make_listing
):
    owner = await make_user(UserRole.OWNER)
    tenant = await make_user(UserRole.TENANT)
    gone = await make_listing(owner, deleted_at=datetime.now(timezone.utc))
    service = FavoriteService(test_db)

    with pytest.raises(NotFound):
        await service.toggle_favorite(ctx_for(tenant), uuid.uuid4())
    with pytest.raises(NotFound):
        await service.toggle_favorite(ctx_for(tenant), gone.id)


async def test_insert_losing_race_still_reports_favorite(
    test_db, make_user, make_listing, monkeypatch
):
    """A concurrent insert of the same pair surfaces as IntegrityError on ours."""
    owner = await make_user(UserRole.OWNER)
    tenant = await make_user(UserRole.TENANT)
    listing = await make_listing(owner)
    service = FavoriteService(test_db)

    async def nothing_removed(tenant_id, listing_id):
        return False

    monkeypatch.setattr(service.repo, "remove", nothing_removed)
    test_db.add(Favorite(tenant_id=tenant.id, listing_id=listing.id))
    await test_db.commit()
    test_db.expunge_all()

    out = await service.toggle_favorite(ctx_for(tenant), listing.id)

    assert out.is_favorite is True
