"""Equivalent viewport windows across world copies and the antimeridian."""

from __future__ import annotations

from .models import GeoBounds

WORLD_WIDTH_DEG = 360.0


def replicate_bounds(bounds: GeoBounds) -> tuple[GeoBounds, ...]:
    """Return ``bounds`` plus its antimeridian halves and one world copy each side.

    The original window always comes first. A window with ``west > east`` adds
    ``[west, 180]`` and ``[-180, east]``; both the -360 and +360 copies are
    always appended, so the result holds 3 or 5 windows.
    """
    out: list[GeoBounds] = [bounds]
    if bounds.crosses_antimeridian:
        out.append(GeoBounds(south=bounds.south, west=bounds.west, north=bounds.north, east=180.0))
        out.append(GeoBounds(south=bounds.south, west=-180.0, north=bounds.north, east=bounds.east))
    for offset in (-WORLD_WIDTH_DEG, WORLD_WIDTH_DEG):
        out.append(bounds.shifted(offset))
    return tuple(out)
