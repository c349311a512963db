"""No-coverage overlay loading and base-layer dependent styling."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import requests

from .catalog import read_feature_collection
from .config import CoverageStylesConfig, ShapeStyle
from .models import CoverageFeature, CoverageOverlay
from .render import CoverageInstructions, StyledShape

SATELLITE_BASE_LAYER = "satellite"

_LOGGER = logging.getLogger("gridexplorer.coverage")


def coverage_style_for(base_layer: str | None, cfg: CoverageStylesConfig) -> ShapeStyle:
    """Lighter preset over satellite imagery, darker one over everything else."""
    if base_layer is not None and base_layer.casefold() == SATELLITE_BASE_LAYER:
        return cfg.satellite
    return cfg.default


class CoverageStyler:
    def __init__(self, cfg: CoverageStylesConfig) -> None:
        self.cfg = cfg

    def restyle(self, overlay: CoverageOverlay, base_layer: str) -> CoverageInstructions:
        style = coverage_style_for(base_layer, self.cfg)
        shapes = tuple(
            StyledShape(
                feature_id=feature.tooltip,
                geometry=feature.geometry,
                style=style,
                tooltip=feature.tooltip,
            )
            for feature in overlay.features
        )
        _LOGGER.info("Updated no-coverage styling for %s view", base_layer)
        return CoverageInstructions(
            base_layer=base_layer,
            shapes=shapes,
            bring_to_front=True,
        )


def coverage_from_feature_collection(payload: Any, *, source: str = "") -> CoverageOverlay:
    if not isinstance(payload, Mapping):
        raise ValueError(f"Expected GeoJSON mapping in {source or 'payload'}")
    if payload.get("type") == "FeatureCollection":
        raw_features = payload.get("features") or []
    elif payload.get("type") == "Feature":
        raw_features = [payload]
    else:
        raw_features = [{"type": "Feature", "geometry": payload, "properties": {}}]

    features: list[CoverageFeature] = []
    for raw in raw_features:
        if not isinstance(raw, Mapping):
            continue
        geometry = raw.get("geometry")
        if not isinstance(geometry, Mapping) or not geometry.get("coordinates"):
            continue
        properties = raw.get("properties")
        features.append(
            CoverageFeature(
                geometry=geometry,
                properties=properties if isinstance(properties, Mapping) else {},
            )
        )
    return CoverageOverlay(features=tuple(features), source=source)


def load_coverage_overlay(
    source: str | Path | None,
    *,
    timeout_s: float = 30.0,
    session: requests.Session | None = None,
) -> CoverageOverlay | None:
    """Optional overlay; every failure degrades to ``None``."""
    if source is None:
        return None
    source_text = str(source)
    try:
        payload = read_feature_collection(source_text, timeout_s=timeout_s, session=session)
        overlay = coverage_from_feature_collection(payload, source=source_text)
    except Exception as exc:
        _LOGGER.warning("Failed to load no-coverage area from %s: %s", source_text, exc)
        return None
    _LOGGER.info("Loaded no-coverage areas with %d features", len(overlay))
    return overlay
