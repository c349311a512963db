"""Ring bounding boxes, centroids and ring validation."""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

from .models import (
    GEOMETRY_MULTIPOLYGON,
    GEOMETRY_POLYGON,
    BBox,
    GridFeature,
    LatLng,
)


class InvalidGeometry(ValueError):
    """Raised when a ring cannot produce a bounding box."""


def bounding_box(ring: Sequence[Sequence[float]]) -> BBox:
    """Return the lat/lng box of ``ring`` ((lon, lat) pairs) in one scan."""
    if not ring:
        raise InvalidGeometry("Cannot compute bounding box of an empty ring")
    min_lat = math.inf
    max_lat = -math.inf
    min_lng = math.inf
    max_lng = -math.inf
    for coord in ring:
        lng = float(coord[0])
        lat = float(coord[1])
        min_lat = min(min_lat, lat)
        max_lat = max(max_lat, lat)
        min_lng = min(min_lng, lng)
        max_lng = max(max_lng, lng)
    return BBox(min_lat=min_lat, max_lat=max_lat, min_lng=min_lng, max_lng=max_lng)


def part_bounding_boxes(feature: GridFeature) -> tuple[BBox, ...]:
    """One box per polygon part, built from each part's outer ring."""
    boxes: list[BBox] = []
    for ring in feature.rings:
        if not ring:
            continue
        boxes.append(bounding_box(ring))
    return tuple(boxes)


def centroid(geometry: GridFeature | Mapping[str, Any] | None) -> LatLng | None:
    """Arithmetic mean of the first outer ring.

    MultiPolygons only contribute their first part, so multi-part tiles are
    centred on that part rather than on the whole shape.
    """
    ring = _first_outer_ring(geometry)
    if not ring:
        return None
    sum_lat = 0.0
    sum_lng = 0.0
    count = 0
    for coord in ring:
        if not isinstance(coord, Sequence) or len(coord) < 2:
            continue
        sum_lng += float(coord[0])
        sum_lat += float(coord[1])
        count += 1
    if count == 0:
        return None
    return LatLng(lat=sum_lat / count, lng=sum_lng / count)


def is_coordinate_pair(coord: Any) -> bool:
    if not isinstance(coord, Sequence) or isinstance(coord, (str, bytes)) or len(coord) < 2:
        return False
    for value in coord[:2]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return True


def is_valid_ring(ring: Any) -> bool:
    """A ring needs three or more pairs of finite numbers; other entries are ignored."""
    if not isinstance(ring, Sequence) or isinstance(ring, (str, bytes)):
        return False
    return sum(1 for coord in ring if is_coordinate_pair(coord)) >= 3


def _first_outer_ring(geometry: GridFeature | Mapping[str, Any] | None) -> Sequence[Any] | None:
    if geometry is None:
        return None
    if isinstance(geometry, GridFeature):
        if geometry.geometry_kind not in (GEOMETRY_POLYGON, GEOMETRY_MULTIPOLYGON):
            return None
        rings = geometry.rings
        return rings[0] if rings else None

    coords = geometry.get("coordinates")
    if not coords:
        return None
    geom_type = geometry.get("type")
    try:
        if geom_type == GEOMETRY_POLYGON:
            return coords[0]
        if geom_type == GEOMETRY_MULTIPOLYGON:
            return coords[0][0]
    except (IndexError, TypeError):
        return None
    return None
