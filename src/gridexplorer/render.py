"""Draw instructions handed to render sinks, plus the bundled sinks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from .config import GridStyleConfig, ShapeStyle, SnapshotConfig
from .geometry import centroid
from .models import GridFeature, LabelPosition, LatLng
from .palette import color_for, to_rgb
from .render_mode import CapacityWarning, RenderMode
from .viewport import ScreenProjector

_LOGGER = logging.getLogger("gridexplorer.render")

_ZORDER_POLYGONS = 2
_ZORDER_POINTS = 3
_ZORDER_COVERAGE = 5
_ZORDER_HIGHLIGHT = 6
_ZORDER_LABELS = 7


@dataclass(frozen=True, slots=True)
class StyledShape:
    feature_id: str
    geometry: Mapping[str, Any]
    style: ShapeStyle
    tooltip: str | None = None


@dataclass(frozen=True, slots=True)
class StyledPoint:
    feature_id: str
    position: LatLng
    style: ShapeStyle


@dataclass(frozen=True, slots=True)
class DrawInstructions:
    """Everything a sink needs to draw one render pass."""

    generation: int
    mode: RenderMode
    zoom: float
    visible_count: int
    polygons: tuple[StyledShape, ...] = ()
    points: tuple[StyledPoint, ...] = ()
    labels: tuple[LabelPosition, ...] = ()
    labels_enabled: bool = False
    capacity_warning: CapacityWarning | None = None

    @property
    def show_zoom_hint(self) -> bool:
        return self.mode is RenderMode.HIDDEN

    @property
    def rendered_count(self) -> int:
        return len(self.polygons) + len(self.points)


@dataclass(frozen=True, slots=True)
class HighlightInstruction:
    feature_id: str
    shape: StyledShape
    duration_s: float


@dataclass(frozen=True, slots=True)
class CoverageInstructions:
    base_layer: str
    shapes: tuple[StyledShape, ...]
    bring_to_front: bool = True


class RenderSink(Protocol):
    def draw(self, instructions: DrawInstructions) -> None: ...

    def draw_highlight(self, highlight: HighlightInstruction) -> None: ...

    def clear_highlight(self) -> None: ...

    def draw_coverage(self, coverage: CoverageInstructions) -> None: ...


def polygon_shape(feature: GridFeature, style: GridStyleConfig) -> StyledShape:
    return StyledShape(
        feature_id=feature.id,
        geometry=feature.geometry_mapping(),
        style=style.polygon.with_color(color_for(feature.id)),
    )


def point_marker(feature: GridFeature, style: GridStyleConfig) -> StyledPoint | None:
    center = centroid(feature)
    if center is None:
        return None
    return StyledPoint(
        feature_id=feature.id,
        position=center,
        style=style.point.with_color(color_for(feature.id)),
    )


def highlight_shape(feature: GridFeature, style: GridStyleConfig) -> StyledShape:
    return StyledShape(
        feature_id=feature.id,
        geometry=feature.geometry_mapping(),
        style=style.highlight,
    )


@dataclass(slots=True)
class RecordingSink:
    """Keeps the latest state of every layer; the history is kept for inspection."""

    instructions: DrawInstructions | None = None
    highlight: HighlightInstruction | None = None
    coverage: CoverageInstructions | None = None
    history: list[DrawInstructions] = field(default_factory=list)
    coverage_front_requests: int = 0

    def draw(self, instructions: DrawInstructions) -> None:
        self.instructions = instructions
        self.history.append(instructions)

    def draw_highlight(self, highlight: HighlightInstruction) -> None:
        self.highlight = highlight

    def clear_highlight(self) -> None:
        self.highlight = None

    def draw_coverage(self, coverage: CoverageInstructions) -> None:
        self.coverage = coverage
        if coverage.bring_to_front:
            self.coverage_front_requests += 1


class MatplotlibSink(RecordingSink):
    """Renders the current layers to an image in screen-pixel space."""

    def __init__(
        self,
        projector: ScreenProjector,
        *,
        width_px: int,
        height_px: int,
        snapshot: SnapshotConfig,
        style: GridStyleConfig,
    ) -> None:
        super().__init__()
        self.projector = projector
        self.width_px = width_px
        self.height_px = height_px
        self.snapshot = snapshot
        self.style = style

    def save(self, output_path: Path) -> Path:
        plt = _require_matplotlib()
        dpi = self.snapshot.dpi
        fig, ax = plt.subplots(figsize=(self.width_px / dpi, self.height_px / dpi), dpi=dpi)
        fig.subplots_adjust(left=0.0, right=1.0, bottom=0.0, top=1.0)
        try:
            fig.patch.set_facecolor(self.snapshot.background)
            ax.set_facecolor(self.snapshot.background)
            ax.set_xlim(0.0, float(self.width_px))
            ax.set_ylim(float(self.height_px), 0.0)
            ax.axis("off")
            center_lng = self.projector.unproject(self.width_px / 2.0, self.height_px / 2.0).lng

            if self.instructions is not None:
                for shape in self.instructions.polygons:
                    self._draw_shape(ax, shape, center_lng=center_lng, zorder=_ZORDER_POLYGONS)
                self._draw_points(ax, self.instructions.points, center_lng=center_lng)
                self._draw_labels(ax, self.instructions.labels)
            if self.coverage is not None:
                for shape in self.coverage.shapes:
                    self._draw_shape(ax, shape, center_lng=center_lng, zorder=_ZORDER_COVERAGE)
            if self.highlight is not None:
                self._draw_shape(
                    ax, self.highlight.shape, center_lng=center_lng, zorder=_ZORDER_HIGHLIGHT
                )

            output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(output_path, dpi=dpi)
            _LOGGER.info("Snapshot written to %s", output_path)
            return output_path
        finally:
            plt.close(fig)

    def _draw_shape(self, ax: Any, shape: StyledShape, *, center_lng: float, zorder: int) -> None:
        from matplotlib.patches import Polygon as PolygonPatch

        style = shape.style
        edge = _rgba(style.color, style.opacity)
        face = _rgba(style.fill_color, style.fill_opacity) if style.fill_color else "none"
        for exterior, holes in _iter_polygons(shape.geometry):
            offset = _world_offset([pt[0] for pt in exterior], center_lng)
            ax.add_patch(
                PolygonPatch(
                    self._project_ring(exterior, offset),
                    closed=True,
                    facecolor=face,
                    edgecolor=edge,
                    linewidth=style.weight,
                    zorder=zorder,
                )
            )
            for hole in holes:
                xy = self._project_ring(hole, offset)
                ax.plot(
                    [pt[0] for pt in xy],
                    [pt[1] for pt in xy],
                    color=edge,
                    linewidth=style.weight,
                    zorder=zorder,
                )

    def _draw_points(self, ax: Any, points: Sequence[StyledPoint], *, center_lng: float) -> None:
        for point in points:
            offset = _world_offset([point.position.lng], center_lng)
            pixel = self.projector.project(point.position.lat, point.position.lng + offset)
            style = point.style
            radius = style.radius if style.radius is not None else 3.0
            ax.scatter(
                [pixel.x],
                [pixel.y],
                s=(2.0 * radius) ** 2,
                c=[_rgba(style.fill_color or style.color, style.fill_opacity)],
                edgecolors=[_rgba(style.color, style.opacity)],
                linewidths=style.weight,
                zorder=_ZORDER_POINTS,
            )

    def _draw_labels(self, ax: Any, labels: Sequence[LabelPosition]) -> None:
        for label in labels:
            ax.text(
                label.pixel.x,
                label.pixel.y,
                label.text,
                color=self.style.label_color,
                fontsize=self.style.label_font_size,
                ha="left",
                va="top",
                clip_on=True,
                zorder=_ZORDER_LABELS,
            )

    def _project_ring(
        self,
        ring: Sequence[tuple[float, float]],
        offset: float,
    ) -> list[tuple[float, float]]:
        out: list[tuple[float, float]] = []
        for lng, lat in ring:
            pixel = self.projector.project(lat, lng + offset)
            out.append((pixel.x, pixel.y))
        return out


def _world_offset(lngs: Sequence[float], center_lng: float) -> float:
    """Multiple of 360 that moves a shape into the world copy nearest the view."""
    if not lngs:
        return 0.0
    mean_lng = sum(lngs) / len(lngs)
    return 360.0 * round((center_lng - mean_lng) / 360.0)


def _iter_polygons(
    geometry: Mapping[str, Any],
) -> list[tuple[list[tuple[float, float]], list[list[tuple[float, float]]]]]:
    shape = _require_shapely_shape()(geometry)
    return _polygon_rings(shape)


def _polygon_rings(geometry: Any) -> list[tuple[list[tuple[float, float]], list[list[tuple[float, float]]]]]:
    geom_type = getattr(geometry, "geom_type", "")
    if geom_type == "Polygon":
        if geometry.is_empty:
            return []
        exterior = [(float(x), float(y)) for x, y, *_ in geometry.exterior.coords]
        holes = [[(float(x), float(y)) for x, y, *_ in ring.coords] for ring in geometry.interiors]
        return [(exterior, holes)]
    if geom_type in ("MultiPolygon", "GeometryCollection"):
        out: list[tuple[list[tuple[float, float]], list[list[tuple[float, float]]]]] = []
        for part in geometry.geoms:
            out.extend(_polygon_rings(part))
        return out
    return []


def _rgba(color: str | None, alpha: float) -> tuple[float, float, float, float]:
    if color is None:
        return (0.0, 0.0, 0.0, 0.0)
    try:
        red, green, blue = to_rgb(color)
    except ValueError:
        from matplotlib.colors import to_rgba

        return to_rgba(color, alpha)
    return (red, green, blue, alpha)


def _require_matplotlib() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for snapshot rendering") from exc
    return plt


def _require_shapely_shape() -> Any:
    try:
        from shapely.geometry import shape
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry drawing in snapshots") from exc
    return shape
