# ==================== UTILS/DISTANCE_CALCULATOR.PY ====================
import math

EARTH_RADIUS_KM = 6371
DEFAULT_TOLERANCE_METERS = 50


class DistanceCalculator:
    """Great-circle distances and the geofence presence check"""

    @staticmethod
    def get_distance_km(lat1, lng1, lat2, lng2):
        """Haversine distance in kilometers between two points in decimal degrees"""
        lat1, lng1, lat2, lng2 = (float(v) for v in (lat1, lng1, lat2, lng2))
        d_lat = math.radians(lat2 - lat1)
        d_lng = math.radians(lng2 - lng1)
        a = (
            math.sin(d_lat / 2) ** 2
            + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return EARTH_RADIUS_KM * c

    @staticmethod
    def get_distance_meters(lat1, lng1, lat2, lng2):
        return DistanceCalculator.get_distance_km(lat1, lng1, lat2, lng2) * 1000

    @staticmethod
    def is_within_tolerance(user_location, target_location, tolerance_meters=DEFAULT_TOLERANCE_METERS):
        """Check whether ``user_location`` lies inside the circle around ``target_location``.

        Both locations are ``(latitude, longitude)`` pairs. Rejecting NaN or
        out-of-range coordinates is left to the caller's input validation.
        """
        distance = DistanceCalculator.get_distance_meters(
            user_location[0], user_location[1],
            target_location[0], target_location[1],
        )
        return distance <= tolerance_meters
