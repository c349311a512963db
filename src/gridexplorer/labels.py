"""Greedy screen-space label placement for grid polygons."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .config import LabelsConfig
from .geometry import centroid
from .models import GridFeature, LabelPosition, LatLng, ScreenPoint
from .viewport import ScreenProjector

_LOGGER = logging.getLogger("gridexplorer.labels")


@dataclass(frozen=True, slots=True)
class _LabelCandidate:
    feature: GridFeature
    text: str
    anchor: ScreenPoint
    width: float


class LabelPlacer:
    """Online placement: each label only avoids the labels accepted before it.

    Candidates are tried at the configured pixel offsets around the feature
    centroid. A candidate collides when it sits closer to an accepted label
    than ``min_distance + (width + other_width) / 4``. Features whose every
    candidate collides get no label.
    """

    def __init__(self, projector: ScreenProjector, cfg: LabelsConfig) -> None:
        self.projector = projector
        self.cfg = cfg
        self._placed: list[LabelPosition] = []

    @property
    def placed(self) -> tuple[LabelPosition, ...]:
        return tuple(self._placed)

    def reset(self) -> None:
        self._placed = []

    def estimate_width(self, text: str) -> float:
        return len(text) * self.cfg.char_width_px

    def place(self, feature: GridFeature) -> LabelPosition | None:
        candidate = self._build_candidate(feature)
        if candidate is None:
            return None
        placement = self._place_candidate(candidate)
        if placement is None:
            _LOGGER.debug("No free label slot for %s", candidate.text)
            return None
        self._placed.append(placement)
        return placement

    def place_all(self, features: Iterable[GridFeature]) -> tuple[LabelPosition, ...]:
        self.reset()
        for feature in features:
            self.place(feature)
        return self.placed

    def _build_candidate(self, feature: GridFeature) -> _LabelCandidate | None:
        center = centroid(feature)
        if center is None:
            return None
        return _LabelCandidate(
            feature=feature,
            text=feature.id,
            anchor=self.projector.project(center.lat, center.lng),
            width=self.estimate_width(feature.id),
        )

    def _place_candidate(self, candidate: _LabelCandidate) -> LabelPosition | None:
        for dx_px, dy_px in self.cfg.offsets_px:
            pixel = ScreenPoint(x=candidate.anchor.x + dx_px, y=candidate.anchor.y + dy_px)
            if _collides(pixel, candidate.width, self._placed, self.cfg.min_distance_px):
                continue
            anchor: LatLng = self.projector.unproject(pixel.x, pixel.y)
            return LabelPosition(
                feature_id=candidate.feature.id,
                text=candidate.text,
                anchor=anchor,
                pixel=pixel,
                estimated_width=candidate.width,
                estimated_height=self.cfg.text_height_px,
            )
        return None


def place_labels(
    features: Sequence[GridFeature],
    projector: ScreenProjector,
    cfg: LabelsConfig,
) -> tuple[LabelPosition, ...]:
    return LabelPlacer(projector, cfg).place_all(features)


def _collides(
    pixel: ScreenPoint,
    width: float,
    occupied: Sequence[LabelPosition],
    min_distance: float,
) -> bool:
    for existing in occupied:
        distance = math.hypot(pixel.x - existing.pixel.x, pixel.y - existing.pixel.y)
        if distance < min_distance + (width + existing.estimated_width) / 4:
            return True
    return False
