"""Zoom-driven level of detail and render caps."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Sequence

from .config import RenderModeConfig
from .models import GridFeature

_LOGGER = logging.getLogger("gridexplorer.render_mode")


class RenderMode(enum.Enum):
    HIDDEN = "hidden"
    POINTS = "points"
    POLYGONS = "polygons"


@dataclass(frozen=True, slots=True)
class RenderPlan:
    mode: RenderMode
    cap: int
    labels_enabled: bool = False


@dataclass(frozen=True, slots=True)
class CapacityWarning:
    mode: RenderMode
    visible_count: int
    cap: int

    @property
    def message(self) -> str:
        return (
            f"Too many grids to render: {self.visible_count}. "
            f"Limiting to {self.cap} ({self.mode.value})."
        )


@dataclass(frozen=True, slots=True)
class CapacityResult:
    features: tuple[GridFeature, ...]
    visible_count: int
    warning: CapacityWarning | None = None

    @property
    def truncated(self) -> bool:
        return self.warning is not None


def select_render_plan(zoom: float, cfg: RenderModeConfig) -> RenderPlan:
    if zoom < cfg.min_zoom_for_grids:
        return RenderPlan(mode=RenderMode.HIDDEN, cap=0)
    if zoom < cfg.point_zoom_threshold:
        return RenderPlan(mode=RenderMode.POINTS, cap=cfg.max_points_to_render)
    return RenderPlan(
        mode=RenderMode.POLYGONS,
        cap=cfg.max_grids_to_render,
        labels_enabled=zoom >= cfg.label_zoom_threshold,
    )


def apply_capacity(features: Sequence[GridFeature], plan: RenderPlan) -> CapacityResult:
    """Keep the first ``plan.cap`` features; overflow is reported, not raised."""
    visible_count = len(features)
    if plan.mode is RenderMode.HIDDEN:
        return CapacityResult(features=(), visible_count=visible_count)
    if visible_count <= plan.cap:
        return CapacityResult(features=tuple(features), visible_count=visible_count)
    warning = CapacityWarning(mode=plan.mode, visible_count=visible_count, cap=plan.cap)
    _LOGGER.warning(warning.message)
    return CapacityResult(
        features=tuple(features[: plan.cap]),
        visible_count=visible_count,
        warning=warning,
    )
