"""Grid catalog loading from GeoJSON and other vector sources."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import requests

from .geometry import is_coordinate_pair, is_valid_ring
from .models import (
    GEOMETRY_POLYGON,
    SUPPORTED_GEOMETRY_KINDS,
    GridCatalog,
    GridFeature,
    PolygonPart,
    Ring,
)

NAME_PROPERTY_KEYS = ("name", "Name", "title", "TITLE", "id")
DEFAULT_GRID_NAME = "Grid"
_JSON_SUFFIXES = {".geojson", ".json"}

_LOGGER = logging.getLogger("gridexplorer.catalog")


class CatalogLoadError(RuntimeError):
    """The catalog could not be fetched or parsed; exploring is unavailable."""


@dataclass(slots=True)
class CatalogLoadReport:
    source: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def resolve_display_name(properties: Mapping[str, Any] | None) -> str:
    """First truthy value of name/Name/title/TITLE/id, else ``"Grid"``."""
    if not properties:
        return DEFAULT_GRID_NAME
    for key in NAME_PROPERTY_KEYS:
        value = properties.get(key)
        if value:
            return str(value)
    return DEFAULT_GRID_NAME


def parse_grid_feature(raw: Any) -> tuple[GridFeature | None, str | None]:
    """Return the parsed feature, or ``None`` and the reason it was dropped."""
    if not isinstance(raw, Mapping):
        return (None, "feature is not a mapping")
    geometry = raw.get("geometry")
    if not isinstance(geometry, Mapping):
        return (None, "missing geometry")
    geom_type = geometry.get("type")
    if geom_type not in SUPPORTED_GEOMETRY_KINDS:
        return (None, f"unsupported geometry type {geom_type!r}")
    coordinates = geometry.get("coordinates")
    if not coordinates:
        return (None, "missing or empty coordinates")

    raw_parts = [coordinates] if geom_type == GEOMETRY_POLYGON else list(coordinates)
    parts: list[PolygonPart] = []
    for raw_part in raw_parts:
        part = _parse_part(raw_part)
        if part:
            parts.append(part)
    if not parts:
        return (None, "no ring with at least 3 coordinate pairs")

    properties_raw = raw.get("properties")
    properties: Mapping[str, Any] = properties_raw if isinstance(properties_raw, Mapping) else {}
    feature = GridFeature(
        id=resolve_display_name(properties),
        geometry_kind=str(geom_type),
        parts=tuple(parts),
        properties=dict(properties),
    )
    return (feature, None)


def catalog_from_feature_collection(
    payload: Any,
    *,
    source: str = "",
) -> tuple[GridCatalog, CatalogLoadReport]:
    report = CatalogLoadReport(source=source)
    if not isinstance(payload, Mapping) or payload.get("type") != "FeatureCollection":
        raise CatalogLoadError(f"Expected a GeoJSON FeatureCollection in {source or 'payload'}")
    raw_features = payload.get("features")
    if not isinstance(raw_features, Sequence):
        raise CatalogLoadError(f"FeatureCollection has no feature list in {source or 'payload'}")

    features: list[GridFeature] = []
    dropped: dict[str, int] = {}
    for raw in raw_features:
        feature, reason = parse_grid_feature(raw)
        if feature is None:
            key = reason or "invalid"
            dropped[key] = dropped.get(key, 0) + 1
            continue
        features.append(feature)

    for reason in sorted(dropped):
        report.add_warning(f"Dropped {dropped[reason]} features: {reason}")
    report.summary = {
        "features_total": len(raw_features),
        "features_loaded": len(features),
        "features_dropped": sum(dropped.values()),
    }
    report.add_info(f"Loaded {len(features)} grid features from {source or 'payload'}")
    _LOGGER.info("Loaded %d grid features (%d dropped)", len(features), sum(dropped.values()))
    return (GridCatalog(features=tuple(features), source=source), report)


def load_catalog(
    source: str | Path,
    *,
    timeout_s: float = 30.0,
    session: requests.Session | None = None,
) -> tuple[GridCatalog, CatalogLoadReport]:
    """Fetch and parse the grid catalog. Any failure is fatal."""
    source_text = str(source)
    try:
        payload = read_feature_collection(source_text, timeout_s=timeout_s, session=session)
    except CatalogLoadError:
        raise
    except Exception as exc:
        _LOGGER.error("Error loading grid data from %s: %s", source_text, exc)
        raise CatalogLoadError(f"Failed to load grid data from {source_text}: {exc}") from exc
    return catalog_from_feature_collection(payload, source=source_text)


def read_feature_collection(
    source: str,
    *,
    timeout_s: float = 30.0,
    session: requests.Session | None = None,
) -> Any:
    """Read a FeatureCollection mapping from a URL, a GeoJSON file or any GDAL vector file."""
    if source.startswith(("http://", "https://")):
        http = session or requests.Session()
        response = http.get(source, timeout=timeout_s)
        response.raise_for_status()
        return response.json()

    path = Path(source)
    if not path.exists():
        raise CatalogLoadError(f"Data file not found: {path}")
    if path.suffix.casefold() in _JSON_SUFFIXES:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)

    gpd = _require_geopandas()
    frame = gpd.read_file(path)
    if frame.crs is not None and frame.crs.to_epsg() != 4326:
        frame = frame.to_crs(epsg=4326)
    return frame.__geo_interface__


def format_report_lines(report: CatalogLoadReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Catalog loaded with no errors.")
    return lines


def _parse_part(raw_part: Any) -> PolygonPart:
    if not isinstance(raw_part, Sequence) or not raw_part:
        return ()
    outer = raw_part[0]
    if not is_valid_ring(outer):
        return ()
    rings: list[Ring] = [_to_ring(outer)]
    for hole in raw_part[1:]:
        if is_valid_ring(hole):
            rings.append(_to_ring(hole))
    return tuple(rings)


def _to_ring(raw_ring: Sequence[Any]) -> Ring:
    return tuple(
        (float(coord[0]), float(coord[1])) for coord in raw_ring if is_coordinate_pair(coord)
    )


def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for non-GeoJSON catalog sources") from exc
    return gpd
