from geopy.distance import geodesic

from core.errors import InvalidInput
from core.settings import settings


def check_coordinates(latitude: float | None, longitude: float | None):
    if latitude is None or longitude is None:
        raise InvalidInput("Latitude and longitude are required", field="latitude")
    if not -90 <= latitude <= 90:
        raise InvalidInput("Latitude must be between -90 and 90", field="latitude")
    if not -180 <= longitude <= 180:
        raise InvalidInput("Longitude must be between -180 and 180", field="longitude")


def campus_distances(latitude: float, longitude: float) -> dict:
    """Geodesic distance in km from a point to each configured campus."""
    point = (latitude, longitude)
    campus_a = (settings.CAMPUS_A_LAT, settings.CAMPUS_A_LON)
    campus_b = (settings.CAMPUS_B_LAT, settings.CAMPUS_B_LON)
    return {
        "distance_campus_a_km": round(geodesic(point, campus_a).km, 3),
        "distance_campus_b_km": round(geodesic(point, campus_b).km, 3),
    }
