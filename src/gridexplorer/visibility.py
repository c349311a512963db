"""Catalog filtering against replicated viewport windows."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .geometry import part_bounding_boxes
from .models import BBox, GeoBounds, GridFeature

_LOGGER = logging.getLogger("gridexplorer.visibility")


def bbox_intersects(bbox: BBox, bounds: GeoBounds) -> bool:
    """Interval test on latitude; longitude also accepts a wrapping window."""
    lng_intersects = (bbox.max_lng >= bounds.west and bbox.min_lng <= bounds.east) or (
        bounds.west > bounds.east
        and (bbox.max_lng >= bounds.west or bbox.min_lng <= bounds.east)
    )
    lat_intersects = bbox.max_lat >= bounds.south and bbox.min_lat <= bounds.north
    return lng_intersects and lat_intersects


def feature_intersects(feature: GridFeature, bounds_list: Sequence[GeoBounds]) -> bool:
    boxes = part_bounding_boxes(feature)
    for bounds in bounds_list:
        if any(bbox_intersects(bbox, bounds) for bbox in boxes):
            return True
    return False


def visible_features(
    catalog: Iterable[GridFeature],
    replicated: Sequence[GeoBounds],
) -> tuple[GridFeature, ...]:
    """Features touching any of ``replicated``, in catalog order."""
    visible = tuple(feature for feature in catalog if feature_intersects(feature, replicated))
    _LOGGER.debug("Visibility pass: %d visible against %d windows", len(visible), len(replicated))
    return visible
