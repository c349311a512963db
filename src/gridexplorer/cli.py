"""CLI entrypoint for the grid explorer."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from .catalog import CatalogLoadError, CatalogLoadReport, format_report_lines, load_catalog
from .config import ExplorerConfig, load_config
from .coverage import load_coverage_overlay
from .models import GridCatalog, LatLng
from .render import MatplotlibSink
from .scheduler import ManualScheduler
from .search import SearchIndex, SearchState
from .session import ViewportSession
from .util import format_name_list, setup_logging, write_json
from .viewport import MercatorViewport

LOGGER = logging.getLogger("gridexplorer.cli")

_DEFAULT_CONFIG = Path("config.yaml")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gridexplorer",
        description="Satellite tile grid explorer.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--config",
            default=None,
            help="Path to YAML config (defaults to ./config.yaml when present).",
        )
        p.add_argument("--catalog", default=None, help="Override the catalog path or URL.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")
        p.add_argument("--log-file", default=None, help="Also write logs to this file.")

    validate_p = subparsers.add_parser("validate", help="Load the catalog and report dropped features.")
    add_common(validate_p)
    validate_p.add_argument("--report", default=None, help="Write the load report as JSON to this path.")

    search_p = subparsers.add_parser("search", help="Search grid names.")
    add_common(search_p)
    search_p.add_argument("query", help="Case-insensitive substring of a grid name.")
    search_p.add_argument("--json", action="store_true", help="Print results as JSON rows.")

    snapshot_p = subparsers.add_parser("snapshot", help="Render one viewport to an image.")
    add_common(snapshot_p)
    snapshot_p.add_argument("--lat", type=float, default=None, help="Viewport center latitude.")
    snapshot_p.add_argument("--lng", type=float, default=None, help="Viewport center longitude.")
    snapshot_p.add_argument("--zoom", type=float, default=None, help="Viewport zoom level.")
    snapshot_p.add_argument("--output", required=True, help="Image path to write.")
    snapshot_p.add_argument("--base-layer", default=None, help="Active base layer name.")
    snapshot_p.add_argument(
        "--highlight",
        default=None,
        help="Jump to and highlight this grid name (overrides --lat/--lng/--zoom).",
    )
    return parser


def _load_and_setup(args: argparse.Namespace) -> ExplorerConfig:
    setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)
    if args.config is not None:
        return load_config(args.config)
    if _DEFAULT_CONFIG.exists():
        return load_config(_DEFAULT_CONFIG)
    LOGGER.info("No config.yaml found; using built-in defaults.")
    return ExplorerConfig.default()


def _load_catalog(
    cfg: ExplorerConfig,
    override: str | None,
) -> tuple[GridCatalog | None, CatalogLoadReport | None]:
    source = override or cfg.data.catalog
    try:
        catalog, report = load_catalog(source, timeout_s=cfg.data.request_timeout_s)
    except CatalogLoadError as exc:
        LOGGER.error("Failed to load grid data: %s", exc)
        return (None, None)
    for line in format_report_lines(report):
        LOGGER.info(line)
    return (catalog, report)


def _run_validate(
    cfg: ExplorerConfig,
    *,
    catalog_override: str | None,
    report_path: str | None,
) -> int:
    catalog, report = _load_catalog(cfg, catalog_override)
    if catalog is None or report is None:
        return 1
    index = SearchIndex.build(catalog, limit=cfg.session.search_limit)
    missing = len(catalog) - len(index)
    if missing:
        LOGGER.warning("%d grids have no centroid and are not searchable", missing)
    overlay = load_coverage_overlay(cfg.data.coverage, timeout_s=cfg.data.request_timeout_s)
    if overlay is None:
        LOGGER.info("No-coverage overlay unavailable.")
    if report_path:
        write_json(
            Path(report_path),
            {
                "source": report.source,
                "summary": report.summary,
                "searchable": len(index),
                "coverage_features": 0 if overlay is None else len(overlay),
                "warnings": report.warnings,
                "errors": report.errors,
            },
        )
        LOGGER.info("Report written to %s", report_path)
    return 0


def _run_search(
    cfg: ExplorerConfig,
    *,
    catalog_override: str | None,
    query: str,
    as_json: bool,
) -> int:
    catalog, _ = _load_catalog(cfg, catalog_override)
    if catalog is None:
        return 1
    response = SearchIndex.build(catalog, limit=cfg.session.search_limit).query(query)
    if as_json:
        print(json.dumps(response.rows(), indent=2, ensure_ascii=False))
        return 0
    if response.state is SearchState.NO_QUERY:
        LOGGER.info("Empty query; nothing to search.")
        return 0
    if response.state is SearchState.NO_MATCHES:
        LOGGER.info("No grids found for '%s'", response.query)
        return 0
    for row in response.rows():
        LOGGER.info("%s  Lat: %.2f, Lng: %.2f", row["displayName"], row["lat"], row["lng"])
    return 0


def _run_snapshot(cfg: ExplorerConfig, args: argparse.Namespace) -> int:
    catalog, _ = _load_catalog(cfg, args.catalog)
    if catalog is None:
        return 1
    overlay = load_coverage_overlay(cfg.data.coverage, timeout_s=cfg.data.request_timeout_s)

    view = cfg.view
    viewport = MercatorViewport(
        center=LatLng(
            lat=view.center_lat if args.lat is None else args.lat,
            lng=view.center_lng if args.lng is None else args.lng,
        ),
        zoom=view.zoom if args.zoom is None else args.zoom,
        width_px=view.width_px,
        height_px=view.height_px,
        min_zoom=view.min_zoom,
        max_zoom=view.max_zoom,
        base_layer=args.base_layer or view.base_layer,
    )
    scheduler = ManualScheduler()
    sink = MatplotlibSink(
        viewport,
        width_px=view.width_px,
        height_px=view.height_px,
        snapshot=cfg.snapshot,
        style=cfg.style,
    )
    session = ViewportSession.create(
        catalog,
        overlay,
        viewport=viewport,
        sink=sink,
        cfg=cfg,
        scheduler=scheduler,
        base_layer=viewport.base_layer,
    )
    try:
        if args.highlight:
            entry = session.select_search_result(args.highlight)
            if entry is None:
                LOGGER.error("Grid '%s' not found", args.highlight)
                return 1
            scheduler.advance(cfg.session.debounce_s)

        instructions = session.instructions
        if instructions is not None:
            if instructions.show_zoom_hint:
                LOGGER.info("Zoom in to see grids (zoom %.1f).", instructions.zoom)
            else:
                LOGGER.info(
                    "Rendered %d of %d visible grids as %s, %d labels",
                    instructions.rendered_count,
                    instructions.visible_count,
                    instructions.mode.value,
                    len(instructions.labels),
                )
                if instructions.labels:
                    LOGGER.debug(
                        "Labels: %s",
                        format_name_list([label.text for label in instructions.labels]),
                    )
            if instructions.capacity_warning is not None:
                LOGGER.warning(instructions.capacity_warning.message)
        sink.save(Path(args.output))
    finally:
        session.dispose()
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "validate":
        return _run_validate(cfg, catalog_override=args.catalog, report_path=args.report)
    if command == "search":
        return _run_search(
            cfg,
            catalog_override=args.catalog,
            query=str(args.query),
            as_json=bool(args.json),
        )
    if command == "snapshot":
        return _run_snapshot(cfg, args)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
