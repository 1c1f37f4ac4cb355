from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models.enums import (
    ListingStatus,
    ListingType,
    RentalStatus,
    SortKey,
    SortOrder,
    UserRole,
)


@dataclass(frozen=True)
class RequestContext:
    """The authenticated actor a request runs on behalf of."""

    actor_id: uuid.UUID
    role: UserRole

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER

    @property
    def is_tenant(self) -> bool:
        return self.role == UserRole.TENANT


class UserBriefOut(BaseModel):
    id: uuid.UUID
    username: str
    role: UserRole

    model_config = {"from_attributes": True}


class ListingCreateSchema(BaseModel):
    title: str
    description: Optional[str] = None
    listing_type: ListingType
    price: float
    area: float
    bedroom_count: int
    bathroom_count: int
    is_furnished: bool = False
    allows_pets: bool = False
    has_garage: bool = False
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    images: List[str] = Field(default_factory=list)

    @field_validator("title", "address", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("images", mode="before")
    @classmethod
    def drop_blank_images(cls, value):
        if isinstance(value, list):
            return [v.strip() for v in value if isinstance(v, str) and v.strip()]
        return value


class ListingUpdateSchema(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    listing_type: Optional[ListingType] = None
    price: Optional[float] = None
    area: Optional[float] = None
    bedroom_count: Optional[int] = None
    bathroom_count: Optional[int] = None
    is_furnished: Optional[bool] = None
    allows_pets: Optional[bool] = None
    has_garage: Optional[bool] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    images: Optional[List[str]] = None
    status: Optional[ListingStatus] = None

    @field_validator("title", "address", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class ListingStatusSchema(BaseModel):
    status: ListingStatus


class ListingBriefOut(BaseModel):
    id: uuid.UUID
    title: str
    address: str
    price: float
    status: ListingStatus

    model_config = {"from_attributes": True}


class ListingOut(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: Optional[str]
    listing_type: ListingType
    price: float
    area: float
    bedroom_count: int
    bathroom_count: int
    is_furnished: bool
    allows_pets: bool
    has_garage: bool
    address: str
    latitude: Optional[float]
    longitude: Optional[float]
    distance_campus_a_km: Optional[float]
    distance_campus_b_km: Optional[float]
    images: List[str] = Field(default_factory=list)
    status: ListingStatus
    created_at: datetime
    updated_at: datetime
    is_favorite: bool = False

    model_config = {"from_attributes": True}


class ListingFilter(BaseModel):
    """Search filters. Every field is optional and the set is AND-combined.

    Bounds are unconstrained here; the query service validates them before
    touching the database.
    """

    q: Optional[str] = None
    listing_type: Optional[ListingType] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    area_min: Optional[float] = None
    area_max: Optional[float] = None
    min_bedrooms: Optional[int] = None
    min_bathrooms: Optional[int] = None
    furnished: Optional[bool] = None
    pets_allowed: Optional[bool] = None
    garage: Optional[bool] = None
    status: Optional[ListingStatus] = None
    sort_by: SortKey = SortKey.CREATED_AT
    order: SortOrder = SortOrder.DESC
    page: int = 1


class ListingPageOut(BaseModel):
    items: List[ListingOut]
    total_pages: int
    total_items: int
    page: int


class OfferCreateSchema(BaseModel):
    tenant_id: uuid.UUID


class RentalOut(BaseModel):
    id: uuid.UUID
    listing_id: uuid.UUID
    owner_id: uuid.UUID
    tenant_id: uuid.UUID
    status: RentalStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    listing: Optional[ListingBriefOut] = None
    tenant: Optional[UserBriefOut] = None

    model_config = {"from_attributes": True}


class MyRentalsOut(BaseModel):
    pending: List[RentalOut] = Field(default_factory=list)
    active: List[RentalOut] = Field(default_factory=list)
    past: List[RentalOut] = Field(default_factory=list)


class RentalHistoryOut(BaseModel):
    id: uuid.UUID
    rental_id: uuid.UUID
    old_status: Optional[RentalStatus]
    new_status: RentalStatus
    changed_by: Optional[uuid.UUID]
    changed_at: datetime

    model_config = {"from_attributes": True}


class FavoriteToggleOut(BaseModel):
    listing_id: uuid.UUID
    is_favorite: bool
