"""initial schema

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c9a2b7d10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_ROLE = sa.Enum("OWNER", "TENANT", name="userrole", native_enum=False)
LISTING_TYPE = sa.Enum(
    "HOUSE", "APARTMENT", "STUDIO", name="listingtype", native_enum=False
)
LISTING_STATUS = sa.Enum(
    "AVAILABLE", "UNAVAILABLE", "OFFERED", "RENTED",
    name="listingstatus",
    native_enum=False,
)
RENTAL_STATUS = sa.Enum(
    "PENDING", "ACTIVE", "FINISHED", "CANCELLED",
    name="rentalstatus",
    native_enum=False,
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "listings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("listing_type", LISTING_TYPE, nullable=False),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("area", sa.Float(), nullable=False),
        sa.Column("bedroom_count", sa.Integer(), nullable=False),
        sa.Column("bathroom_count", sa.Integer(), nullable=False),
        sa.Column("is_furnished", sa.Boolean(), nullable=False),
        sa.Column("allows_pets", sa.Boolean(), nullable=False),
        sa.Column("has_garage", sa.Boolean(), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("distance_campus_a_km", sa.Float(), nullable=True),
        sa.Column("distance_campus_b_km", sa.Float(), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("status", LISTING_STATUS, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_listings_owner_id", "listings", ["owner_id"])
    op.create_index("ix_listings_listing_type", "listings", ["listing_type"])
    op.create_index("ix_listings_price", "listings", ["price"])
    op.create_index("ix_listings_status", "listings", ["status"])
    op.create_index("ix_listings_created_at", "listings", ["created_at"])

    op.create_table(
        "rentals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("listing_id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("status", RENTAL_STATUS, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"]),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["cancelled_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rentals_listing_id", "rentals", ["listing_id"])
    op.create_index("ix_rentals_owner_id", "rentals", ["owner_id"])
    op.create_index("ix_rentals_tenant_id", "rentals", ["tenant_id"])
    op.create_index("ix_rentals_status", "rentals", ["status"])
    op.create_index(
        "uq_rentals_one_open_per_listing",
        "rentals",
        ["listing_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('PENDING', 'ACTIVE')"),
        sqlite_where=sa.text("status IN ('PENDING', 'ACTIVE')"),
    )

    op.create_table(
        "rental_status_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("rental_id", sa.Uuid(), nullable=False),
        sa.Column("old_status", RENTAL_STATUS, nullable=True),
        sa.Column("new_status", RENTAL_STATUS, nullable=False),
        sa.Column("changed_by", sa.Uuid(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["rental_id"], ["rentals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["changed_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_rental_status_history_rental_id", "rental_status_history", ["rental_id"]
    )

    op.create_table(
        "favorites",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("listing_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("tenant_id", "listing_id"),
    )


def downgrade() -> None:
    op.drop_table("favorites")
    op.drop_index("ix_rental_status_history_rental_id", table_name="rental_status_history")
    op.drop_table("rental_status_history")
    op.drop_index("uq_rentals_one_open_per_listing", table_name="rentals")
    op.drop_index("ix_rentals_status", table_name="rentals")
    op.drop_index("ix_rentals_tenant_id", table_name="rentals")
    op.drop_index("ix_rentals_owner_id", table_name="rentals")
    op.drop_index("ix_rentals_listing_id", table_name="rentals")
    op.drop_table("rentals")
    op.drop_index("ix_listings_created_at", table_name="listings")
    op.drop_index("ix_listings_status", table_name="listings")
    op.drop_index("ix_listings_price", table_name="listings")
    op.drop_index("ix_listings_listing_type", table_name="listings")
    op.drop_index("ix_listings_owner_id", table_name="listings")
    op.drop_table("listings")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
