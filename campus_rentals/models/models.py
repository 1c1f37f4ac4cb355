import uuid
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.get_db import Base

from .enums import ListingStatus, ListingType, RentalStatus, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    username: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    listings: Mapped[List["Listing"]] = relationship(
        "Listing", back_populates="owner", foreign_keys="Listing.owner_id"
    )

    def __repr__(self):
        return f"<User {self.username} ({self.role.value})>"


class Listing(Base):
    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner: Mapped["User"] = relationship(
        "User", back_populates="listings", foreign_keys=[owner_id]
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    listing_type: Mapped[ListingType] = mapped_column(
        Enum(ListingType, native_enum=False), nullable=False, index=True
    )
    price: Mapped[float] = mapped_column(
        Numeric(precision=12, scale=2, asdecimal=False), nullable=False, index=True
    )
    area: Mapped[float] = mapped_column(Float, nullable=False)
    bedroom_count: Mapped[int] = mapped_column(Integer, nullable=False)
    bathroom_count: Mapped[int] = mapped_column(Integer, nullable=False)
    is_furnished: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allows_pets: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_garage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance_campus_a_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance_campus_b_km: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    images: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, native_enum=False),
        default=ListingStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    rentals: Mapped[List["Rental"]] = relationship("Rental", back_populates="listing")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Listing {self.title} [{self.status.value}]>"


class Rental(Base):
    __tablename__ = "rentals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id"), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    status: Mapped[RentalStatus] = mapped_column(
        Enum(RentalStatus, native_enum=False),
        default=RentalStatus.PENDING,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )

    listing: Mapped["Listing"] = relationship("Listing", back_populates="rentals")
    owner: Mapped["User"] = relationship("User", foreign_keys=[owner_id])
    tenant: Mapped["User"] = relationship("User", foreign_keys=[tenant_id])
    history: Mapped[List["RentalStatusHistory"]] = relationship(
        "RentalStatusHistory",
        back_populates="rental",
        order_by="RentalStatusHistory.changed_at",
    )

    # Stored enum values are the member names.
    __table_args__ = (
        Index(
            "uq_rentals_one_open_per_listing",
            "listing_id",
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'ACTIVE')"),
            sqlite_where=text("status IN ('PENDING', 'ACTIVE')"),
        ),
    )

    def __repr__(self):
        return f"<Rental {self.id} [{self.status.value}]>"


class RentalStatusHistory(Base):
    __tablename__ = "rental_status_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    rental_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("rentals.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    old_status: Mapped[Optional[RentalStatus]] = mapped_column(
        Enum(RentalStatus, native_enum=False), nullable=True
    )
    new_status: Mapped[RentalStatus] = mapped_column(
        Enum(RentalStatus, native_enum=False), nullable=False
    )
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    rental: Mapped["Rental"] = relationship("Rental", back_populates="history")


class Favorite(Base):
    __tablename__ = "favorites"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
