"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _non_negative(value: float, field_name: str) -> float:
    if value < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return value


def _source_from_cfg(value: Any, field_name: str, root_dir: Path | None) -> str:
    raw = _str(value, field_name)
    if raw.startswith(("http://", "https://")) or root_dir is None:
        return raw
    p = Path(raw)
    return str(p if p.is_absolute() else root_dir / p)


@dataclass(frozen=True, slots=True)
class DataConfig:
    catalog: str
    coverage: str | None
    request_timeout_s: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path | None) -> DataConfig:
        coverage_raw = raw.get("coverage", "data/sentinel-2_no_coverage.geojson")
        return cls(
            catalog=_source_from_cfg(
                raw.get("catalog", "data/sentinel-2_grids.geojson"), "data.catalog", root_dir
            ),
            coverage=(
                None
                if coverage_raw is None
                else _source_from_cfg(coverage_raw, "data.coverage", root_dir)
            ),
            request_timeout_s=_non_negative(
                _float(raw.get("request_timeout_s", 30.0), "data.request_timeout_s"),
                "data.request_timeout_s",
            ),
        )


@dataclass(frozen=True, slots=True)
class ViewConfig:
    center_lat: float
    center_lng: float
    zoom: float
    min_zoom: float
    max_zoom: float
    width_px: int
    height_px: int
    base_layer: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ViewConfig:
        center_raw = raw.get("center", [-25.0, 135.0])
        if not isinstance(center_raw, list) or len(center_raw) != 2:
            raise ValueError("Expected [lat, lng] list for 'view.center'")
        min_zoom = _float(raw.get("min_zoom", 4), "view.min_zoom")
        max_zoom = _float(raw.get("max_zoom", 18), "view.max_zoom")
        if min_zoom > max_zoom:
            raise ValueError("view.min_zoom cannot be greater than view.max_zoom")
        width_px = _int(raw.get("width_px", 1280), "view.width_px")
        height_px = _int(raw.get("height_px", 800), "view.height_px")
        if width_px < 1 or height_px < 1:
            raise ValueError("view.width_px and view.height_px must be >= 1")
        return cls(
            center_lat=_float(center_raw[0], "view.center[0]"),
            center_lng=_float(center_raw[1], "view.center[1]"),
            zoom=_float(raw.get("zoom", 5), "view.zoom"),
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            width_px=width_px,
            height_px=height_px,
            base_layer=_str(raw.get("base_layer", "satellite"), "view.base_layer").casefold(),
        )


@dataclass(frozen=True, slots=True)
class RenderModeConfig:
    min_zoom_for_grids: float
    point_zoom_threshold: float
    label_zoom_threshold: float
    max_grids_to_render: int
    max_points_to_render: int

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderModeConfig:
        min_zoom = _float(raw.get("min_zoom_for_grids", 4), "render.min_zoom_for_grids")
        point_zoom = _float(raw.get("point_zoom_threshold", 7), "render.point_zoom_threshold")
        label_zoom = _float(raw.get("label_zoom_threshold", 8), "render.label_zoom_threshold")
        max_grids = _int(raw.get("max_grids_to_render", 10000), "render.max_grids_to_render")
        max_points = _int(raw.get("max_points_to_render", 50000), "render.max_points_to_render")
        if min_zoom > point_zoom:
            raise ValueError(
                "render.min_zoom_for_grids cannot be greater than render.point_zoom_threshold"
            )
        if max_grids < 1 or max_points < 1:
            raise ValueError("render.max_*_to_render must be >= 1")
        return cls(
            min_zoom_for_grids=min_zoom,
            point_zoom_threshold=point_zoom,
            label_zoom_threshold=label_zoom,
            max_grids_to_render=max_grids,
            max_points_to_render=max_points,
        )


_DEFAULT_LABEL_OFFSETS: tuple[tuple[int, int], ...] = (
    (0, 0),
    (10, -5),
    (-10, -5),
    (0, -15),
    (0, 10),
    (15, -15),
    (-15, -15),
    (15, 10),
    (-15, 10),
)


@dataclass(frozen=True, slots=True)
class LabelsConfig:
    offsets_px: tuple[tuple[int, int], ...]
    min_distance_px: float
    char_width_px: float
    text_height_px: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> LabelsConfig:
        offsets_raw = raw.get("offsets_px")
        offsets: tuple[tuple[int, int], ...] = _DEFAULT_LABEL_OFFSETS
        if offsets_raw is not None:
            if not isinstance(offsets_raw, list) or not offsets_raw:
                raise ValueError("Expected non-empty list for 'labels.offsets_px'")
            parsed: list[tuple[int, int]] = []
            for idx, item in enumerate(offsets_raw):
                if not isinstance(item, list) or len(item) != 2:
                    raise ValueError(f"Invalid labels.offsets_px[{idx}]")
                dx = _int(item[0], f"labels.offsets_px[{idx}][0]")
                dy = _int(item[1], f"labels.offsets_px[{idx}][1]")
                parsed.append((dx, dy))
            offsets = tuple(parsed)
        return cls(
            offsets_px=offsets,
            min_distance_px=_non_negative(
                _float(raw.get("min_distance_px", 20), "labels.min_distance_px"),
                "labels.min_distance_px",
            ),
            char_width_px=_non_negative(
                _float(raw.get("char_width_px", 8), "labels.char_width_px"),
                "labels.char_width_px",
            ),
            text_height_px=_non_negative(
                _float(raw.get("text_height_px", 16), "labels.text_height_px"),
                "labels.text_height_px",
            ),
        )


@dataclass(frozen=True, slots=True)
class SessionConfig:
    debounce_ms: float
    highlight_seconds: float
    search_limit: int
    search_zoom: float

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> SessionConfig:
        search_limit = _int(raw.get("search_limit", 10), "session.search_limit")
        if search_limit < 1:
            raise ValueError("session.search_limit must be >= 1")
        return cls(
            debounce_ms=_non_negative(
                _float(raw.get("debounce_ms", 100), "session.debounce_ms"), "session.debounce_ms"
            ),
            highlight_seconds=_non_negative(
                _float(raw.get("highlight_seconds", 3), "session.highlight_seconds"),
                "session.highlight_seconds",
            ),
            search_limit=search_limit,
            search_zoom=_float(raw.get("search_zoom", 10), "session.search_zoom"),
        )


@dataclass(frozen=True, slots=True)
class ShapeStyle:
    """Stroke/fill description handed to a render sink."""

    color: str
    weight: float
    opacity: float
    fill_color: str | None
    fill_opacity: float
    radius: float | None = None

    def with_color(self, color: str) -> ShapeStyle:
        return ShapeStyle(
            color=color,
            weight=self.weight,
            opacity=self.opacity,
            fill_color=color,
            fill_opacity=self.fill_opacity,
            radius=self.radius,
        )

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any],
        field_name: str,
        defaults: ShapeStyle,
    ) -> ShapeStyle:
        fill_raw = raw.get("fill_color", defaults.fill_color)
        radius_raw = raw.get("radius", defaults.radius)
        return cls(
            color=_str(raw.get("color", defaults.color), f"{field_name}.color"),
            weight=_float(raw.get("weight", defaults.weight), f"{field_name}.weight"),
            opacity=_float(raw.get("opacity", defaults.opacity), f"{field_name}.opacity"),
            fill_color=None if fill_raw is None else _str(fill_raw, f"{field_name}.fill_color"),
            fill_opacity=_float(
                raw.get("fill_opacity", defaults.fill_opacity), f"{field_name}.fill_opacity"
            ),
            radius=None if radius_raw is None else _float(radius_raw, f"{field_name}.radius"),
        )


# Grid colors are replaced per feature by the column palette.
_DEFAULT_POLYGON_STYLE = ShapeStyle(
    color="#e74c3c", weight=2.0, opacity=0.8, fill_color="#e74c3c", fill_opacity=0.1
)
_DEFAULT_POINT_STYLE = ShapeStyle(
    color="#e74c3c", weight=1.0, opacity=0.8, fill_color="#e74c3c", fill_opacity=0.6, radius=3.0
)
_DEFAULT_HIGHLIGHT_STYLE = ShapeStyle(
    color="#ffff00", weight=4.0, opacity=1.0, fill_color="#ffff00", fill_opacity=0.3
)
_DEFAULT_COVERAGE_SATELLITE = ShapeStyle(
    color="#9e9e9e", weight=1.0, opacity=0.9, fill_color="#bdbdbd", fill_opacity=0.5
)
_DEFAULT_COVERAGE_OTHER = ShapeStyle(
    color="#757575", weight=1.0, opacity=0.8, fill_color="#424242", fill_opacity=0.4
)


@dataclass(frozen=True, slots=True)
class GridStyleConfig:
    polygon: ShapeStyle
    point: ShapeStyle
    highlight: ShapeStyle
    label_color: str
    label_font_size: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> GridStyleConfig:
        return cls(
            polygon=ShapeStyle.from_mapping(
                _optional_mapping(raw.get("polygon"), "style.polygon"),
                "style.polygon",
                _DEFAULT_POLYGON_STYLE,
            ),
            point=ShapeStyle.from_mapping(
                _optional_mapping(raw.get("point"), "style.point"),
                "style.point",
                _DEFAULT_POINT_STYLE,
            ),
            highlight=ShapeStyle.from_mapping(
                _optional_mapping(raw.get("highlight"), "style.highlight"),
                "style.highlight",
                _DEFAULT_HIGHLIGHT_STYLE,
            ),
            label_color=_str(raw.get("label_color", "#ffffff"), "style.label_color"),
            label_font_size=_float(raw.get("label_font_size", 9), "style.label_font_size"),
        )


@dataclass(frozen=True, slots=True)
class CoverageStylesConfig:
    satellite: ShapeStyle
    default: ShapeStyle

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CoverageStylesConfig:
        return cls(
            satellite=ShapeStyle.from_mapping(
                _optional_mapping(raw.get("satellite"), "coverage_styles.satellite"),
                "coverage_styles.satellite",
                _DEFAULT_COVERAGE_SATELLITE,
            ),
            default=ShapeStyle.from_mapping(
                _optional_mapping(raw.get("default"), "coverage_styles.default"),
                "coverage_styles.default",
                _DEFAULT_COVERAGE_OTHER,
            ),
        )


@dataclass(frozen=True, slots=True)
class SnapshotConfig:
    dpi: int
    background: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> SnapshotConfig:
        dpi = _int(raw.get("dpi", 100), "snapshot.dpi")
        if dpi < 1:
            raise ValueError("snapshot.dpi must be >= 1")
        return cls(
            dpi=dpi,
            background=_str(raw.get("background", "white"), "snapshot.background"),
        )


@dataclass(frozen=True, slots=True)
class ExplorerConfig:
    source_path: Path | None
    data: DataConfig
    view: ViewConfig
    render: RenderModeConfig
    labels: LabelsConfig
    session: SessionConfig
    style: GridStyleConfig
    coverage_styles: CoverageStylesConfig
    snapshot: SnapshotConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path | None = None) -> ExplorerConfig:
        root_dir = source_path.parent.resolve() if source_path is not None else None
        return cls(
            source_path=source_path.resolve() if source_path is not None else None,
            data=DataConfig.from_mapping(_optional_mapping(raw.get("data"), "data"), root_dir),
            view=ViewConfig.from_mapping(_optional_mapping(raw.get("view"), "view")),
            render=RenderModeConfig.from_mapping(_optional_mapping(raw.get("render"), "render")),
            labels=LabelsConfig.from_mapping(_optional_mapping(raw.get("labels"), "labels")),
            session=SessionConfig.from_mapping(_optional_mapping(raw.get("session"), "session")),
            style=GridStyleConfig.from_mapping(_optional_mapping(raw.get("style"), "style")),
            coverage_styles=CoverageStylesConfig.from_mapping(
                _optional_mapping(raw.get("coverage_styles"), "coverage_styles")
            ),
            snapshot=SnapshotConfig.from_mapping(_optional_mapping(raw.get("snapshot"), "snapshot")),
        )

    @classmethod
    def default(cls) -> ExplorerConfig:
        return cls.from_mapping({})


def load_config(path: str | Path) -> ExplorerConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return ExplorerConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
