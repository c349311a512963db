"""Domain models shared across the explorer modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

Coordinate = tuple[float, float]
Ring = tuple[Coordinate, ...]
PolygonPart = tuple[Ring, ...]

GEOMETRY_POLYGON = "Polygon"
GEOMETRY_MULTIPOLYGON = "MultiPolygon"
SUPPORTED_GEOMETRY_KINDS = (GEOMETRY_POLYGON, GEOMETRY_MULTIPOLYGON)


@dataclass(frozen=True, slots=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class ScreenPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class GeoBounds:
    """Geographic window in degrees; ``west > east`` marks an antimeridian span."""

    south: float
    west: float
    north: float
    east: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.west > self.east

    def shifted(self, offset: float) -> GeoBounds:
        return GeoBounds(
            south=self.south,
            west=self.west + offset,
            north=self.north,
            east=self.east + offset,
        )


@dataclass(frozen=True, slots=True)
class BBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


@dataclass(frozen=True, slots=True)
class GridFeature:
    """One grid tile polygon from the catalog."""

    id: str
    geometry_kind: str
    parts: tuple[PolygonPart, ...]
    properties: Mapping[str, Any] = field(default_factory=dict)

    @property
    def rings(self) -> tuple[Ring, ...]:
        """Outer ring of every polygon part, in order."""
        return tuple(part[0] for part in self.parts if part)

    def geometry_mapping(self) -> dict[str, Any]:
        parts = [[[list(pt) for pt in ring] for ring in part] for part in self.parts]
        if self.geometry_kind == GEOMETRY_POLYGON:
            return {"type": GEOMETRY_POLYGON, "coordinates": parts[0]}
        return {"type": GEOMETRY_MULTIPOLYGON, "coordinates": parts}

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": self.geometry_mapping(),
            "properties": dict(self.properties),
        }


@dataclass(frozen=True, slots=True)
class GridCatalog:
    """Immutable ordered feature set for one session."""

    features: tuple[GridFeature, ...]
    source: str = ""

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[GridFeature]:
        return iter(self.features)


@dataclass(frozen=True, slots=True)
class CoverageFeature:
    """Polygon of an area without imagery coverage."""

    geometry: Mapping[str, Any]
    properties: Mapping[str, Any] = field(default_factory=dict)

    @property
    def tooltip(self) -> str:
        name = self.properties.get("name")
        if name:
            return f"No S2 Coverage: {name}"
        return "No Sentinel-2 Data Available"


@dataclass(frozen=True, slots=True)
class CoverageOverlay:
    features: tuple[CoverageFeature, ...]
    source: str = ""

    def __len__(self) -> int:
        return len(self.features)


@dataclass(frozen=True, slots=True)
class LabelPosition:
    """Accepted label anchor for one rendering pass."""

    feature_id: str
    text: str
    anchor: LatLng
    pixel: ScreenPoint
    estimated_width: float
    estimated_height: float


@dataclass(frozen=True, slots=True)
class SearchIndexEntry:
    normalized_name: str
    display_name: str
    centroid: LatLng
    feature: GridFeature
