"""Geo SQL — haversine distance and bounding-box predicates as SQL expressions.

Invariants:
    - Haversine on a sphere of EARTH_RADIUS_MILES (core/geo.py)
    - The asin argument is clamped to 1 so rounding near antipodal points
      never leaves its domain
    - Uses only radians/sin/cos/asin/sqrt/power: native on Postgres, registered
      on SQLite connections by infrastructure/database.py
"""

from sqlalchemy import and_, case, func
from sqlalchemy.sql.elements import ColumnElement

from factsnap.core.geo import EARTH_RADIUS_MILES, GeoPoint, bounding_box


def distance_miles_expr(lat_col, lon_col, center: GeoPoint) -> ColumnElement:
    """Great-circle distance from `center` to (lat_col, lon_col), in miles."""
    dlat = func.radians(lat_col - center.latitude)
    dlon = func.radians(lon_col - center.longitude)
    h = (
        func.power(func.sin(dlat / 2.0), 2)
        + func.cos(func.radians(center.latitude))
        * func.cos(func.radians(lat_col))
        * func.power(func.sin(dlon / 2.0), 2)
    )
    root = func.sqrt(h)
    return 2.0 * EARTH_RADIUS_MILES * func.asin(case((root > 1.0, 1.0), else_=root))


def within_radius(lat_col, lon_col, center: GeoPoint, radius_miles: float) -> ColumnElement:
    """Bounding-box prefilter (index friendly) AND exact haversine predicate."""
    box = bounding_box(center, radius_miles)
    clauses = [lat_col.between(box.min_lat, box.max_lat)]
    if box.min_lon is not None:
        clauses.append(lon_col.between(box.min_lon, box.max_lon))
    clauses.append(distance_miles_expr(lat_col, lon_col, center) <= radius_miles)
    return and_(*clauses)
