"""Tests for bounds replication and visibility filtering."""

from __future__ import annotations

import random

from gridexplorer.catalog import parse_grid_feature
from gridexplorer.models import BBox, GeoBounds, GridCatalog
from gridexplorer.visibility import bbox_intersects, feature_intersects, visible_features
from gridexplorer.wrapping import replicate_bounds


def _covered(lng: float, windows) -> bool:
    for window in windows:
        if window.crosses_antimeridian:
            if lng >= window.west or lng <= window.east:
                return True
        elif window.west <= lng <= window.east:
            return True
    return False


class TestReplicateBounds:
    def test_plain_window_gets_two_world_copies(self):
        bounds = GeoBounds(south=-10.0, west=10.0, north=10.0, east=20.0)
        out = replicate_bounds(bounds)
        assert out[0] == bounds
        assert out[1:] == (
            GeoBounds(south=-10.0, west=-350.0, north=10.0, east=-340.0),
            GeoBounds(south=-10.0, west=370.0, north=10.0, east=380.0),
        )

    def test_antimeridian_window_is_split(self):
        bounds = GeoBounds(south=-20.0, west=170.0, north=-10.0, east=-170.0)
        out = replicate_bounds(bounds)
        assert len(out) == 5
        assert out[0] == bounds
        assert out[1] == GeoBounds(south=-20.0, west=170.0, north=-10.0, east=180.0)
        assert out[2] == GeoBounds(south=-20.0, west=-180.0, north=-10.0, east=-170.0)

    def test_union_covers_every_normalized_longitude(self):
        """Each longitude in the window, normalized into [-180, 180], stays covered."""
        rng = random.Random(7)
        for _ in range(200):
            west = rng.uniform(-400.0, 400.0)
            span = rng.uniform(0.1, 120.0)
            bounds = GeoBounds(south=-5.0, west=west, north=5.0, east=west + span)
            windows = replicate_bounds(bounds)
            for step in range(1, 10):
                lng = west + span * step / 10.0
                normalized = ((lng + 180.0) % 360.0) - 180.0
                assert _covered(normalized, windows), (bounds, lng)


class TestBBoxIntersects:
    def test_overlap_and_separation(self):
        bounds = GeoBounds(south=0.0, west=0.0, north=10.0, east=10.0)
        assert bbox_intersects(BBox(min_lat=5, max_lat=15, min_lng=5, max_lng=15), bounds)
        assert not bbox_intersects(BBox(min_lat=11, max_lat=15, min_lng=5, max_lng=6), bounds)
        assert not bbox_intersects(BBox(min_lat=1, max_lat=2, min_lng=11, max_lng=12), bounds)

    def test_touching_edges_count(self):
        bounds = GeoBounds(south=0.0, west=0.0, north=10.0, east=10.0)
        assert bbox_intersects(BBox(min_lat=10, max_lat=12, min_lng=10, max_lng=12), bounds)

    def test_wrapping_window(self):
        bounds = GeoBounds(south=-20.0, west=170.0, north=-10.0, east=-170.0)
        assert bbox_intersects(BBox(min_lat=-15, max_lat=-14, min_lng=175, max_lng=176), bounds)
        assert bbox_intersects(BBox(min_lat=-15, max_lat=-14, min_lng=-176, max_lng=-175), bounds)
        assert not bbox_intersects(BBox(min_lat=-15, max_lat=-14, min_lng=0, max_lng=1), bounds)


class TestVisibleFeatures:
    def test_antimeridian_feature_seen_from_both_sides(self):
        split = {
            "type": "Feature",
            "properties": {"name": "01KAB"},
            "geometry": {
                "type": "MultiPolygon",
                "coordinates": [
                    [[[179.5, -16.0], [180.0, -16.0], [180.0, -15.0], [179.5, -15.0]]],
                    [[[-180.0, -16.0], [-179.5, -16.0], [-179.5, -15.0], [-180.0, -15.0]]],
                ],
            },
        }
        feature, _ = parse_grid_feature(split)
        east_only = replicate_bounds(GeoBounds(south=-17.0, west=-179.8, north=-14.0, east=-170.0))
        west_only = replicate_bounds(GeoBounds(south=-17.0, west=170.0, north=-14.0, east=179.8))
        assert feature_intersects(feature, east_only)
        assert feature_intersects(feature, west_only)

    def test_single_part_straddling_the_antimeridian(self):
        """An unsplit tile spanning 179.9 to -179.9 is seen by a window crossing the antimeridian."""
        straddle = {
            "type": "Feature",
            "properties": {"name": "01KAC"},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[179.9, -15.0], [-179.9, -15.0], [-179.9, -14.0], [179.9, -14.0]]],
            },
        }
        feature, _ = parse_grid_feature(straddle)
        bounds = replicate_bounds(GeoBounds(south=-20.0, west=170.0, north=-10.0, east=-170.0))
        assert feature_intersects(feature, bounds)
        assert visible_features(GridCatalog(features=(feature,)), bounds) == (feature,)

    def test_unwrapped_viewport_sees_world_copy(self, make_square):
        feature = make_square("60KXF", 175.0, -15.0)
        bounds = GeoBounds(south=-20.0, west=-200.0, north=-10.0, east=-160.0)
        assert feature_intersects(feature, replicate_bounds(bounds))
        assert not feature_intersects(feature, [bounds])

    def test_catalog_order_is_kept(self, make_square):
        catalog = GridCatalog(
            features=(
                make_square("03AAA", 3.0, 3.0),
                make_square("40FAR", 100.0, 50.0),
                make_square("01AAA", 1.0, 1.0),
                make_square("02AAA", 2.0, 2.0),
            )
        )
        bounds = replicate_bounds(GeoBounds(south=0.0, west=0.0, north=5.0, east=5.0))
        visible = visible_features(catalog, bounds)
        assert [feature.id for feature in visible] == ["03AAA", "01AAA", "02AAA"]
