from enum import Enum


class UserRole(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"


class ListingType(str, Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    STUDIO = "studio"


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    OFFERED = "offered"
    RENTED = "rented"


# Statuses an owner may set directly; the others belong to an open rental.
OWNER_SETTABLE_STATUSES = frozenset({ListingStatus.AVAILABLE, ListingStatus.UNAVAILABLE})
EDITABLE_STATUSES = OWNER_SETTABLE_STATUSES


class RentalStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"


OPEN_RENTAL_STATUSES = frozenset({RentalStatus.PENDING, RentalStatus.ACTIVE})
CLOSED_RENTAL_STATUSES = frozenset({RentalStatus.FINISHED, RentalStatus.CANCELLED})


class SortKey(str, Enum):
    CREATED_AT = "createdAt"
    PRICE = "price"
    AREA = "area"
    BEDROOM_COUNT = "bedroomCount"
    BATHROOM_COUNT = "bathroomCount"
    DISTANCE_TO_CAMPUS_A = "distanceToCampusA"
    DISTANCE_TO_CAMPUS_B = "distanceToCampusB"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ListingAudience(str, Enum):
    BROWSE = "browse"
    FAVORITES = "favorites"
    OWNER = "owner"
