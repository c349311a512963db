"""Tests for the command line entrypoint."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from gridexplorer.cli import main

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@pytest.fixture(autouse=True)
def _drop_cli_log_handlers():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def config_path(tmp_path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "data:",
                f"  catalog: '{DATA_DIR / 'sample_grids.geojson'}'",
                f"  coverage: '{DATA_DIR / 'sample_no_coverage.geojson'}'",
                "view:",
                "  width_px: 320",
                "  height_px: 200",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path


class TestSearchCommand:
    def test_json_rows(self, config_path, capsys):
        assert main(["search", "53j", "--config", str(config_path), "--json"]) == 0
        rows = json.loads(capsys.readouterr().out)
        assert [row["displayName"] for row in rows] == ["53JMM", "53JNM", "53JML"]
        assert set(rows[0]) == {"displayName", "lat", "lng"}

    def test_no_matches(self, config_path, capsys):
        assert main(["search", "zzz", "--config", str(config_path), "--json"]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_missing_catalog_fails(self, config_path, tmp_path):
        missing = tmp_path / "missing.geojson"
        assert main(["search", "53", "--config", str(config_path), "--catalog", str(missing)]) == 1


class TestValidateCommand:
    def test_sample_catalog(self, config_path):
        assert main(["validate", "--config", str(config_path)]) == 0

    def test_log_file(self, config_path, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        assert main(["validate", "--config", str(config_path), "--log-file", str(log_file)]) == 0
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "Loaded 6 grid features" in log_file.read_text(encoding="utf-8")

    def test_json_report(self, config_path, tmp_path):
        report_path = tmp_path / "report.json"
        assert main(["validate", "--config", str(config_path), "--report", str(report_path)]) == 0
        report = json.loads(report_path.read_text(encoding="utf-8"))
        assert report["summary"] == {"features_total": 7, "features_loaded": 6, "features_dropped": 1}
        assert report["searchable"] == 6
        assert report["coverage_features"] == 2
        assert report["errors"] == []


class TestSnapshotCommand:
    def test_writes_image(self, config_path, tmp_path):
        output = tmp_path / "snap.png"
        code = main(
            [
                "snapshot",
                "--config",
                str(config_path),
                "--lat",
                "-25",
                "--lng",
                "135",
                "--zoom",
                "8",
                "--output",
                str(output),
            ]
        )
        assert code == 0
        assert output.exists()

    def test_highlight_jumps_to_grid(self, config_path, tmp_path):
        output = tmp_path / "snap.png"
        assert main(["snapshot", "--config", str(config_path), "--highlight", "60KXF", "--output", str(output)]) == 0
        assert output.exists()

    def test_unknown_highlight_fails(self, config_path, tmp_path):
        output = tmp_path / "snap.png"
        assert main(["snapshot", "--config", str(config_path), "--highlight", "nope", "--output", str(output)]) == 1
        assert not output.exists()
