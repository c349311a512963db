"""Shared fixtures: a linear projector, a scriptable viewport and feature factories."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from gridexplorer.config import ExplorerConfig
from gridexplorer.events import EventChannel, Subscription
from gridexplorer.models import GeoBounds, GridCatalog, GridFeature, LatLng, ScreenPoint
from gridexplorer.render import RecordingSink
from gridexplorer.scheduler import ManualScheduler


class LinearProjector:
    """Plate carree projector: ``scale`` pixels per degree from the NW corner."""

    def __init__(self, west: float = 0.0, north: float = 10.0, scale: float = 10.0) -> None:
        self.west = west
        self.north = north
        self.scale = scale

    def project(self, lat: float, lng: float) -> ScreenPoint:
        return ScreenPoint(x=(lng - self.west) * self.scale, y=(self.north - lat) * self.scale)

    def unproject(self, x: float, y: float) -> LatLng:
        return LatLng(lat=self.north - y / self.scale, lng=self.west + x / self.scale)


class FakeViewport(LinearProjector):
    """Viewport provider whose bounds and zoom are set directly by the test."""

    def __init__(self, bounds: GeoBounds, zoom: float, scale: float = 10.0) -> None:
        super().__init__(west=bounds.west, north=bounds.north, scale=scale)
        self.bounds = bounds
        self.zoom = zoom
        self.view_calls: list[tuple[float, float, float]] = []
        self._changed = EventChannel("viewport_change")
        self._layer_changed = EventChannel("base_layer_change")

    def get_bounds(self) -> GeoBounds:
        return self.bounds

    def get_zoom(self) -> float:
        return self.zoom

    def move_to(self, bounds: GeoBounds, zoom: float | None = None) -> None:
        self.bounds = bounds
        self.west = bounds.west
        self.north = bounds.north
        if zoom is not None:
            self.zoom = zoom
        self._changed.emit()

    def set_view(self, lat: float, lng: float, zoom: float) -> None:
        self.view_calls.append((lat, lng, zoom))
        half_h = (self.bounds.north - self.bounds.south) / 2.0
        half_w = (self.bounds.east - self.bounds.west) / 2.0
        self.move_to(
            GeoBounds(south=lat - half_h, west=lng - half_w, north=lat + half_h, east=lng + half_w),
            zoom,
        )

    def switch_base_layer(self, name: str) -> None:
        self._layer_changed.emit(name)

    def on_viewport_change(self, callback: Callable[[], Any]) -> Subscription:
        return self._changed.subscribe(callback)

    def on_base_layer_change(self, callback: Callable[[str], Any]) -> Subscription:
        return self._layer_changed.subscribe(callback)


def square_feature(name: str, lng: float, lat: float, half: float = 0.1) -> GridFeature:
    ring = (
        (lng - half, lat - half),
        (lng + half, lat - half),
        (lng + half, lat + half),
        (lng - half, lat + half),
    )
    return GridFeature(id=name, geometry_kind="Polygon", parts=((ring,),), properties={"Name": name})


@pytest.fixture
def make_square() -> Callable[..., GridFeature]:
    return square_feature


@pytest.fixture
def projector() -> LinearProjector:
    return LinearProjector()


@pytest.fixture
def cfg() -> ExplorerConfig:
    return ExplorerConfig.default()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def three_grid_catalog() -> GridCatalog:
    return GridCatalog(
        features=(
            square_feature("53JMM", 134.5, -24.8),
            square_feature("53JNM", 135.5, -24.8),
            square_feature("53JML", 134.5, -25.7),
        ),
        source="memory",
    )


@pytest.fixture
def australia_viewport() -> FakeViewport:
    return FakeViewport(GeoBounds(south=-27.0, west=133.0, north=-23.0, east=137.0), zoom=10, scale=200.0)


@pytest.fixture
def feature_collection() -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "01CCV"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]]],
                },
            },
            {
                "type": "Feature",
                "properties": {"Name": "02XXX"},
                "geometry": {
                    "type": "MultiPolygon",
                    "coordinates": [
                        [[[10.0, 10.0], [12.0, 10.0], [12.0, 12.0], [10.0, 12.0]]],
                        [[[20.0, 20.0], [22.0, 20.0], [22.0, 22.0], [20.0, 22.0]]],
                    ],
                },
            },
            {
                "type": "Feature",
                "properties": {"title": "10CCV"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[4.0, 4.0], [6.0, 4.0], [6.0, 6.0], [4.0, 6.0]]],
                },
            },
        ],
    }
