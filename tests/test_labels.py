"""Tests for greedy label placement."""

from __future__ import annotations

import math
import random

import pytest

from gridexplorer.labels import LabelPlacer, place_labels
from gridexplorer.models import ScreenPoint


def _min_gap_ok(labels, min_distance: float) -> bool:
    for i, first in enumerate(labels):
        for second in labels[i + 1 :]:
            distance = math.hypot(first.pixel.x - second.pixel.x, first.pixel.y - second.pixel.y)
            if distance < min_distance + (first.estimated_width + second.estimated_width) / 4:
                return False
    return True


class TestLabelPlacer:
    def test_first_label_sits_on_centroid(self, projector, cfg, make_square):
        placer = LabelPlacer(projector, cfg.labels)
        label = placer.place(make_square("53JMM", 2.0, 5.0))
        assert label is not None
        assert label.pixel == ScreenPoint(x=pytest.approx(20.0), y=pytest.approx(50.0))
        assert label.estimated_width == 40.0
        assert label.estimated_height == 16.0
        assert label.anchor.lat == pytest.approx(5.0)
        assert label.anchor.lng == pytest.approx(2.0)

    def test_falls_back_to_next_free_offset(self, projector, cfg, make_square):
        """Short labels: the centre collides, the (10, -5) offset does not."""
        placer = LabelPlacer(projector, cfg.labels)
        placer.place(make_square("A", 0.0, 5.0))
        second = placer.place(make_square("B", 2.0, 5.0))
        assert second is not None
        assert second.pixel.x == pytest.approx(30.0)
        assert second.pixel.y == pytest.approx(45.0)

    def test_omitted_when_every_offset_collides(self, projector, cfg, make_square):
        placer = LabelPlacer(projector, cfg.labels)
        assert placer.place(make_square("53JMM", 2.0, 5.0)) is not None
        assert placer.place(make_square("53JNM", 2.0, 5.0)) is None
        assert len(placer.placed) == 1

    def test_far_apart_labels_all_placed(self, projector, cfg, make_square):
        features = [make_square(f"5{i}AAA", 10.0 * i, 5.0) for i in range(4)]
        labels = place_labels(features, projector, cfg.labels)
        assert [label.text for label in labels] == ["50AAA", "51AAA", "52AAA", "53AAA"]

    def test_place_all_resets_previous_pass(self, projector, cfg, make_square):
        placer = LabelPlacer(projector, cfg.labels)
        feature = make_square("53JMM", 2.0, 5.0)
        assert len(placer.place_all([feature])) == 1
        assert len(placer.place_all([feature])) == 1

    def test_feature_without_centroid_gets_no_label(self, projector, cfg):
        from gridexplorer.models import GridFeature

        placer = LabelPlacer(projector, cfg.labels)
        assert placer.place(GridFeature(id="X", geometry_kind="Polygon", parts=((),))) is None

    def test_accepted_labels_keep_minimum_spacing(self, projector, cfg, make_square):
        rng = random.Random(11)
        features = [
            make_square(f"{rng.randint(1, 60):02d}{chr(65 + i % 26)}X", rng.uniform(0, 40), rng.uniform(-20, 10))
            for i in range(150)
        ]
        labels = place_labels(features, projector, cfg.labels)
        assert labels
        assert _min_gap_ok(labels, cfg.labels.min_distance_px)
