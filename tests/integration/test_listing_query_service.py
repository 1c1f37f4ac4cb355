"""Listing query engine: filters, audiences, sorting and pagination.

Invariants:
    - Range and bound validation happens before any database read
    - Browse and favorites only ever show AVAILABLE, non-withdrawn listings
    - The owner panel is owner-only and scoped to the caller's listings
    - Ties break on id so paging is stable; NULL distances sort last
    - totalPages = ceil(matches / 12); a page past the end is empty
    - Free-text search is a literal, case-insensitive substring match
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import ctx_for
from core.errors import InvalidInput, InvalidRange, Unauthorized
from models.enums import (
    ListingAudience,
    ListingStatus,
    ListingType,
    SortKey,
    SortOrder,
    UserRole,
)
from models.models import Favorite
from schemas.schema import ListingFilter, RequestContext
from services.listing_query_service import ListingQueryService


@pytest.fixture
async def owner(make_user):
    return await make_user(UserRole.OWNER)


@pytest.fixture
async def tenant(make_user):
    return await make_user(UserRole.TENANT)


async def test_inverted_price_range_fails_without_reading(owner):
    db = AsyncMock()
    service = ListingQueryService(db)

    with pytest.raises(InvalidRange):
        await service.query_listings(
            ListingFilter(price_min=500, price_max=100),
            ListingAudience.BROWSE,
            ctx_for(owner),
        )

    db.execute.assert_not_awaited()


async def test_inverted_area_range_fails(owner):
    db = AsyncMock()

    with pytest.raises(InvalidRange) as exc:
        await ListingQueryService(db).query_listings(
            ListingFilter(area_min=80, area_max=20),
            ListingAudience.BROWSE,
            ctx_for(owner),
        )

    assert exc.value.field == "area"
    db.execute.assert_not_awaited()


@pytest.mark.parametrize(
    "filters",
    [
        ListingFilter(price_min=-1),
        ListingFilter(area_max=-5),
        ListingFilter(min_bedrooms=-1),
        ListingFilter(page=0),
    ],
)
async def test_negative_bounds_and_bad_page_are_invalid_input(owner, filters):
    db = AsyncMock()

    with pytest.raises(InvalidInput) as exc:
        await ListingQueryService(db).query_listings(
            filters, ListingAudience.BROWSE, ctx_for(owner)
        )

    assert not isinstance(exc.value, InvalidRange)
    db.execute.assert_not_awaited()


async def test_25_matches_paginate_into_three_pages(test_db, make_listing, owner, tenant):
    for i in range(25):
        await make_listing(owner, title=f"Unit {i}")

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(page=3), ListingAudience.BROWSE, ctx_for(tenant)
    )

    assert page.total_pages == 3
    assert page.total_items == 25
    assert len(page.items) == 1


async def test_page_past_end_is_empty(test_db, make_listing, owner, tenant):
    await make_listing(owner)

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(page=5), ListingAudience.BROWSE, ctx_for(tenant)
    )

    assert page.items == []
    assert page.total_pages == 1


async def test_no_matches_gives_zero_pages(test_db, tenant):
    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(), ListingAudience.BROWSE, ctx_for(tenant)
    )

    assert page.total_pages == 0
    assert page.items == []


async def test_browse_hides_non_available_and_withdrawn(
    test_db, make_listing, owner, tenant
):
    visible = await make_listing(owner, title="Visible")
    await make_listing(owner, title="Paused", status=ListingStatus.UNAVAILABLE)
    await make_listing(owner, title="Taken", status=ListingStatus.RENTED)
    await make_listing(owner, title="Gone", deleted_at=datetime.now(timezone.utc))

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(status=ListingStatus.RENTED),
        ListingAudience.BROWSE,
        ctx_for(tenant),
    )

    assert [item.id for item in page.items] == [visible.id]


async def test_filters_combine(test_db, make_listing, owner, tenant):
    match = await make_listing(
        owner,
        title="Furnished house with garage",
        listing_type=ListingType.HOUSE,
        price=1500.0,
        area=90.0,
        bedroom_count=3,
        bathroom_count=2,
        is_furnished=True,
        has_garage=True,
    )
    await make_listing(owner, listing_type=ListingType.HOUSE, price=1500.0, bedroom_count=3)
    await make_listing(owner, listing_type=ListingType.STUDIO, is_furnished=True)
    await make_listing(
        owner,
        listing_type=ListingType.HOUSE,
        price=3000.0,
        bedroom_count=3,
        is_furnished=True,
        has_garage=True,
    )

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(
            q="GARAGE",
            listing_type=ListingType.HOUSE,
            price_min=1000,
            price_max=2000,
            area_min=50,
            min_bedrooms=2,
            min_bathrooms=2,
            furnished=True,
            garage=True,
        ),
        ListingAudience.BROWSE,
        ctx_for(tenant),
    )

    assert [item.id for item in page.items] == [match.id]


@pytest.mark.parametrize("term", ["_", "%", "a_b", "%near%"])
async def test_text_search_treats_wildcards_literally(
    test_db, make_listing, owner, tenant, term
):
    await make_listing(owner, title="Room near campus")

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(q=term), ListingAudience.BROWSE, ctx_for(tenant)
    )

    assert page.total_items == 0
    assert page.items == []


async def test_text_search_matches_literal_percent(test_db, make_listing, owner, tenant):
    discounted = await make_listing(owner, title="Studio, 50% off first month")
    await make_listing(owner, title="Studio, 500 per month")

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(q="50%"), ListingAudience.BROWSE, ctx_for(tenant)
    )

    assert [item.id for item in page.items] == [discounted.id]


async def test_tri_state_false_filter_excludes_true(test_db, make_listing, owner, tenant):
    no_pets = await make_listing(owner, allows_pets=False)
    await make_listing(owner, allows_pets=True)

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(pets_allowed=False), ListingAudience.BROWSE, ctx_for(tenant)
    )

    assert [item.id for item in page.items] == [no_pets.id]


async def test_sort_by_price_ascending_with_id_tie_break(
    test_db, make_listing, owner, tenant
):
    cheap = await make_listing(owner, price=500.0)
    tied = [await make_listing(owner, price=800.0) for _ in range(3)]
    pricey = await make_listing(owner, price=1200.0)

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(sort_by=SortKey.PRICE, order=SortOrder.ASC),
        ListingAudience.BROWSE,
        ctx_for(tenant),
    )

    expected = [cheap.id] + sorted(row.id for row in tied) + [pricey.id]
    assert [item.id for item in page.items] == expected


async def test_missing_distances_sort_last_both_ways(
    test_db, make_listing, owner, tenant
):
    near = await make_listing(owner, distance_campus_a_km=0.5)
    far = await make_listing(owner, distance_campus_a_km=4.0)
    unknown = await make_listing(owner, distance_campus_a_km=None)
    service = ListingQueryService(test_db)

    asc = await service.query_listings(
        ListingFilter(sort_by=SortKey.DISTANCE_TO_CAMPUS_A, order=SortOrder.ASC),
        ListingAudience.BROWSE,
        ctx_for(tenant),
    )
    desc = await service.query_listings(
        ListingFilter(sort_by=SortKey.DISTANCE_TO_CAMPUS_A, order=SortOrder.DESC),
        ListingAudience.BROWSE,
        ctx_for(tenant),
    )

    assert [i.id for i in asc.items] == [near.id, far.id, unknown.id]
    assert [i.id for i in desc.items] == [far.id, near.id, unknown.id]


async def test_owner_panel_requires_owner_role(tenant):
    db = AsyncMock()

    with pytest.raises(Unauthorized):
        await ListingQueryService(db).query_listings(
            ListingFilter(), ListingAudience.OWNER, ctx_for(tenant)
        )

    db.execute.assert_not_awaited()


async def test_owner_panel_shows_own_listings_in_any_status(
    test_db, make_user, make_listing, owner
):
    other_owner = await make_user(UserRole.OWNER)
    mine_available = await make_listing(owner)
    mine_rented = await make_listing(owner, status=ListingStatus.RENTED)
    await make_listing(other_owner)
    service = ListingQueryService(test_db)

    page = await service.query_listings(
        ListingFilter(), ListingAudience.OWNER, ctx_for(owner)
    )
    assert {i.id for i in page.items} == {mine_available.id, mine_rented.id}

    rented_only = await service.query_listings(
        ListingFilter(status=ListingStatus.RENTED),
        ListingAudience.OWNER,
        ctx_for(owner),
    )
    assert [i.id for i in rented_only.items] == [mine_rented.id]


async def test_favorites_audience_shows_only_callers_available_favorites(
    test_db, make_user, make_listing, owner, tenant
):
    someone_else = await make_user(UserRole.TENANT)
    liked = await make_listing(owner)
    liked_but_rented = await make_listing(owner, status=ListingStatus.RENTED)
    liked_by_other = await make_listing(owner)
    await make_listing(owner)
    test_db.add_all(
        [
            Favorite(tenant_id=tenant.id, listing_id=liked.id),
            Favorite(tenant_id=tenant.id, listing_id=liked_but_rented.id),
            Favorite(tenant_id=someone_else.id, listing_id=liked_by_other.id),
        ]
    )
    await test_db.commit()

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(), ListingAudience.FAVORITES, ctx_for(tenant)
    )

    assert [i.id for i in page.items] == [liked.id]
    assert page.items[0].is_favorite is True


async def test_browse_marks_callers_favorites(test_db, make_listing, owner, tenant):
    liked = await make_listing(owner, price=100.0)
    other = await make_listing(owner, price=200.0)
    test_db.add(Favorite(tenant_id=tenant.id, listing_id=liked.id))
    await test_db.commit()

    page = await ListingQueryService(test_db).query_listings(
        ListingFilter(sort_by=SortKey.PRICE, order=SortOrder.ASC),
        ListingAudience.BROWSE,
        RequestContext(actor_id=tenant.id, role=tenant.role),
    )

    assert [(i.id, i.is_favorite) for i in page.items] == [
        (liked.id, True),
        (other.id, False),
    ]
