"""Viewport provider capability and a headless Web Mercator implementation."""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any, Callable, Protocol

from .events import EventChannel, Subscription
from .models import GeoBounds, LatLng, ScreenPoint

_LOGGER = logging.getLogger("gridexplorer.viewport")

TILE_SIZE_PX = 256
EARTH_RADIUS_M = 6378137.0
HALF_WORLD_M = math.pi * EARTH_RADIUS_M
MAX_MERCATOR_LAT = 85.0511287798


class ScreenProjector(Protocol):
    def project(self, lat: float, lng: float) -> ScreenPoint: ...

    def unproject(self, x: float, y: float) -> LatLng: ...


class ViewportProvider(ScreenProjector, Protocol):
    def get_bounds(self) -> GeoBounds: ...

    def get_zoom(self) -> float: ...

    def set_view(self, lat: float, lng: float, zoom: float) -> None: ...

    def on_viewport_change(self, callback: Callable[[], Any]) -> Subscription: ...

    def on_base_layer_change(self, callback: Callable[[str], Any]) -> Subscription: ...


class MercatorViewport:
    """Slippy-map viewport over EPSG:3857 with 256 px tiles.

    Longitudes are kept unwrapped, as a map with world copies reports them:
    panning east past the antimeridian yields ``east > 180`` rather than a
    jump to -180.
    """

    def __init__(
        self,
        *,
        center: LatLng,
        zoom: float,
        width_px: int,
        height_px: int,
        min_zoom: float = 0.0,
        max_zoom: float = 18.0,
        base_layer: str = "satellite",
    ) -> None:
        if width_px < 1 or height_px < 1:
            raise ValueError("Viewport size must be at least 1x1 pixels")
        self.width_px = width_px
        self.height_px = height_px
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._center = _clamp_center(center)
        self._zoom = self._clamp_zoom(zoom)
        self._base_layer = base_layer.casefold()
        self._viewport_changed = EventChannel("viewport_change")
        self._base_layer_changed = EventChannel("base_layer_change")

    @property
    def center(self) -> LatLng:
        return self._center

    @property
    def base_layer(self) -> str:
        return self._base_layer

    def get_zoom(self) -> float:
        return self._zoom

    def get_bounds(self) -> GeoBounds:
        north_west = self.unproject(0.0, 0.0)
        south_east = self.unproject(float(self.width_px), float(self.height_px))
        return GeoBounds(
            south=south_east.lat,
            west=north_west.lng,
            north=north_west.lat,
            east=south_east.lng,
        )

    def resolution_m_per_px(self) -> float:
        return (2.0 * HALF_WORLD_M) / (TILE_SIZE_PX * (2.0 ** self._zoom))

    def project(self, lat: float, lng: float) -> ScreenPoint:
        x_m, y_m = _lnglat_to_mercator(lng, lat)
        cx_m, cy_m = _lnglat_to_mercator(self._center.lng, self._center.lat)
        res = self.resolution_m_per_px()
        return ScreenPoint(
            x=(x_m - cx_m) / res + self.width_px / 2.0,
            y=(cy_m - y_m) / res + self.height_px / 2.0,
        )

    def unproject(self, x: float, y: float) -> LatLng:
        cx_m, cy_m = _lnglat_to_mercator(self._center.lng, self._center.lat)
        res = self.resolution_m_per_px()
        x_m = cx_m + (x - self.width_px / 2.0) * res
        y_m = cy_m - (y - self.height_px / 2.0) * res
        lng, lat = _mercator_to_lnglat(x_m, y_m)
        return LatLng(lat=lat, lng=lng)

    def set_view(self, lat: float, lng: float, zoom: float) -> None:
        self._center = _clamp_center(LatLng(lat=lat, lng=lng))
        self._zoom = self._clamp_zoom(zoom)
        _LOGGER.debug("View set to (%.4f, %.4f) z=%.2f", lat, lng, self._zoom)
        self._viewport_changed.emit()

    def set_zoom(self, zoom: float) -> None:
        self.set_view(self._center.lat, self._center.lng, zoom)

    def pan_by(self, dx_px: float, dy_px: float) -> None:
        target = self.unproject(self.width_px / 2.0 + dx_px, self.height_px / 2.0 + dy_px)
        self.set_view(target.lat, target.lng, self._zoom)

    def set_base_layer(self, name: str) -> None:
        chosen = name.casefold()
        if chosen == self._base_layer:
            return
        self._base_layer = chosen
        self._base_layer_changed.emit(chosen)

    def on_viewport_change(self, callback: Callable[[], Any]) -> Subscription:
        return self._viewport_changed.subscribe(callback)

    def on_base_layer_change(self, callback: Callable[[str], Any]) -> Subscription:
        return self._base_layer_changed.subscribe(callback)

    def _clamp_zoom(self, zoom: float) -> float:
        return min(max(float(zoom), self.min_zoom), self.max_zoom)


def _clamp_center(center: LatLng) -> LatLng:
    lat = min(max(center.lat, -MAX_MERCATOR_LAT), MAX_MERCATOR_LAT)
    return LatLng(lat=lat, lng=center.lng)


def _lnglat_to_mercator(lng: float, lat: float) -> tuple[float, float]:
    forward, _ = _require_pyproj_transformers()
    lat = min(max(lat, -MAX_MERCATOR_LAT), MAX_MERCATOR_LAT)
    copies = math.floor((lng + 180.0) / 360.0)
    x_m, y_m = forward.transform(lng - 360.0 * copies, lat)
    return (float(x_m) + copies * 2.0 * HALF_WORLD_M, float(y_m))


def _mercator_to_lnglat(x_m: float, y_m: float) -> tuple[float, float]:
    _, inverse = _require_pyproj_transformers()
    y_m = min(max(y_m, -HALF_WORLD_M), HALF_WORLD_M)
    copies = math.floor((x_m + HALF_WORLD_M) / (2.0 * HALF_WORLD_M))
    lng, lat = inverse.transform(x_m - copies * 2.0 * HALF_WORLD_M, y_m)
    return (float(lng) + 360.0 * copies, float(lat))


@lru_cache(maxsize=1)
def _require_pyproj_transformers() -> tuple[Any, Any]:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for Web Mercator viewport projection") from exc
    return (
        Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True),
        Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True),
    )
