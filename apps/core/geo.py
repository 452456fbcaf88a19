"""
Geofencing helpers for attendance check-ins

Pure functions, no database access:
- haversine_m: great-circle distance between two lat/lng points (metres)
- parse_coordinates: read the location payload the browser sends
- classify_location: on_site / remote / unknown against a list of offices
"""

import math

EARTH_RADIUS_M = 6371000

ON_SITE = 'on_site'
REMOTE = 'remote'
UNKNOWN = 'unknown'


def haversine_m(lat1, lng1, lat2, lng2):
    """
    Distance in metres between (lat1, lng1) and (lat2, lng2)

    Symmetric, and 0 for identical points.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a a hair above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def _to_float(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_coordinates(value):
    """
    Accepted shapes:
        "28.61,77.20"
        {"coordinates": "28.61,77.20"}
        {"lat": 28.61, "lng": 77.20}
        {"latitude": 28.61, "longitude": 77.20}

    Returns:
        tuple (lat, lng) or None when missing / malformed / out of range
    """
    if value is None:
        return None

    lat = lng = None

    if isinstance(value, dict):
        if 'coordinates' in value:
            return parse_coordinates(value['coordinates'])
        lat = _to_float(value.get('lat', value.get('latitude')))
        lng = _to_float(value.get('lng', value.get('longitude')))
    elif isinstance(value, str):
        parts = value.split(',')
        if len(parts) != 2:
            return None
        lat, lng = _to_float(parts[0].strip()), _to_float(parts[1].strip())
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lat, lng = _to_float(value[0]), _to_float(value[1])

    if lat is None or lng is None:
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def classify_location(value, offices):
    """
    Classify a check-in location against configured offices

    Args:
        value: location payload (see parse_coordinates)
        offices: iterable of objects with name, latitude, longitude, radius_m

    Returns:
        dict: {'mode': 'on_site'|'remote'|'unknown',
               'office': name or None,
               'distance_m': float or None}

    The nearest office whose radius contains the point wins. When no office
    contains it, the result is remote and reports the nearest office.
    """
    point = parse_coordinates(value)
    if point is None:
        return {'mode': UNKNOWN, 'office': None, 'distance_m': None}

    nearest = None
    nearest_inside = None

    for office in offices:
        distance = haversine_m(point[0], point[1], float(office.latitude), float(office.longitude))
        if nearest is None or distance < nearest[1]:
            nearest = (office, distance)
        if distance <= float(office.radius_m):
            if nearest_inside is None or distance < nearest_inside[1]:
                nearest_inside = (office, distance)

    if nearest_inside:
        office, distance = nearest_inside
        return {'mode': ON_SITE, 'office': office.name, 'distance_m': round(distance, 1)}

    if nearest:
        office, distance = nearest
        return {'mode': REMOTE, 'office': office.name, 'distance_m': round(distance, 1)}

    return {'mode': REMOTE, 'office': None, 'distance_m': None}
