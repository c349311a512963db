"""Per-session orchestration of visibility, level of detail, labels and search."""

from __future__ import annotations

import logging
from typing import Any

from .config import ExplorerConfig
from .coverage import CoverageStyler
from .events import Subscription
from .labels import LabelPlacer
from .models import CoverageOverlay, GridCatalog, GridFeature, LabelPosition, SearchIndexEntry
from .render import (
    CoverageInstructions,
    DrawInstructions,
    HighlightInstruction,
    RenderSink,
    highlight_shape,
    point_marker,
    polygon_shape,
)
from .render_mode import RenderMode, apply_capacity, select_render_plan
from .scheduler import Debouncer, Scheduler, TimerHandle
from .search import SearchIndex, SearchResponse, SearchState
from .viewport import ViewportProvider
from .visibility import visible_features
from .wrapping import replicate_bounds

_LOGGER = logging.getLogger("gridexplorer.session")


class ViewportSession:
    """Owns all render state for one catalog on one viewport.

    Lifecycle: :meth:`create` subscribes to the viewport and draws the first
    pass, viewport changes are debounced into :meth:`recompute`, and
    :meth:`dispose` unsubscribes and invalidates any scheduled work.

    All state lives on the host's thread: timers come from the injected
    scheduler, which the host drains from its own loop.
    """

    def __init__(
        self,
        *,
        catalog: GridCatalog,
        viewport: ViewportProvider,
        sink: RenderSink,
        cfg: ExplorerConfig,
        scheduler: Scheduler,
        overlay: CoverageOverlay | None = None,
        base_layer: str | None = None,
    ) -> None:
        self.catalog = catalog
        self.overlay = overlay
        self.viewport = viewport
        self.sink = sink
        self.cfg = cfg
        self.scheduler = scheduler
        self.search_index = SearchIndex.build(catalog, limit=cfg.session.search_limit)
        self.active_base_layer = (base_layer or cfg.view.base_layer).casefold()
        self._styler = CoverageStyler(cfg.coverage_styles)
        self._labels = LabelPlacer(viewport, cfg.labels)
        self._debouncer = Debouncer(scheduler, cfg.session.debounce_s, self._run_scheduled_recompute)
        self._subscriptions: list[Subscription] = []
        self._generation = 0
        self._render_pass = 0
        self._disposed = False
        self._instructions: DrawInstructions | None = None
        self._coverage: CoverageInstructions | None = None
        self._highlight: HighlightInstruction | None = None
        self._highlight_timer: TimerHandle | None = None

    @classmethod
    def create(
        cls,
        catalog: GridCatalog,
        overlay: CoverageOverlay | None,
        *,
        viewport: ViewportProvider,
        sink: RenderSink,
        scheduler: Scheduler,
        cfg: ExplorerConfig | None = None,
        base_layer: str | None = None,
    ) -> ViewportSession:
        session = cls(
            catalog=catalog,
            overlay=overlay,
            viewport=viewport,
            sink=sink,
            cfg=cfg or ExplorerConfig.default(),
            scheduler=scheduler,
            base_layer=base_layer,
        )
        session.start()
        return session

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def instructions(self) -> DrawInstructions | None:
        return self._instructions

    @property
    def labels(self) -> tuple[LabelPosition, ...]:
        if self._instructions is None:
            return ()
        return self._instructions.labels

    @property
    def highlight(self) -> HighlightInstruction | None:
        return self._highlight

    @property
    def coverage(self) -> CoverageInstructions | None:
        return self._coverage

    def start(self) -> None:
        self._subscriptions.append(self.viewport.on_viewport_change(self.on_viewport_change))
        self._subscriptions.append(self.viewport.on_base_layer_change(self.on_base_layer_change))
        if self.overlay is not None:
            self._apply_coverage_style()
        self.recompute()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self._debouncer.cancel()
        self.clear_highlight()
        _LOGGER.debug("Session disposed (generation %d)", self._generation)

    def on_viewport_change(self, *_args: Any) -> None:
        if self._disposed:
            return
        self._debouncer.trigger(self._generation)

    def on_base_layer_change(self, name: str) -> None:
        if self._disposed:
            return
        self.active_base_layer = name.casefold()
        if self.overlay is not None:
            self._apply_coverage_style()

    def recompute(self) -> DrawInstructions:
        """Run one synchronous render pass against the current viewport."""
        self._render_pass += 1
        zoom = self.viewport.get_zoom()
        plan = select_render_plan(zoom, self.cfg.render)

        if plan.mode is RenderMode.HIDDEN:
            instructions = DrawInstructions(
                generation=self._render_pass,
                mode=plan.mode,
                zoom=zoom,
                visible_count=0,
            )
            return self._emit(instructions)

        replicated = replicate_bounds(self.viewport.get_bounds())
        visible = visible_features(self.catalog, replicated)
        capped = apply_capacity(visible, plan)
        _LOGGER.debug(
            "Found %d visible grids out of %d total (zoom %.2f)",
            capped.visible_count,
            len(self.catalog),
            zoom,
        )

        if plan.mode is RenderMode.POINTS:
            points = tuple(
                marker
                for marker in (point_marker(feature, self.cfg.style) for feature in capped.features)
                if marker is not None
            )
            instructions = DrawInstructions(
                generation=self._render_pass,
                mode=plan.mode,
                zoom=zoom,
                visible_count=capped.visible_count,
                points=points,
                capacity_warning=capped.warning,
            )
        else:
            labels: tuple[LabelPosition, ...] = ()
            if plan.labels_enabled:
                labels = self._labels.place_all(capped.features)
            else:
                self._labels.reset()
            instructions = DrawInstructions(
                generation=self._render_pass,
                mode=plan.mode,
                zoom=zoom,
                visible_count=capped.visible_count,
                polygons=tuple(polygon_shape(feature, self.cfg.style) for feature in capped.features),
                labels=labels,
                labels_enabled=plan.labels_enabled,
                capacity_warning=capped.warning,
            )
        return self._emit(instructions)

    def search(self, text: str | None) -> SearchResponse:
        response = self.search_index.query(text)
        if response.state is SearchState.NO_QUERY:
            self.clear_highlight()
        return response

    def select_search_result(self, display_name: str) -> SearchIndexEntry | None:
        entry = self.search_index.lookup_by_display_name(display_name)
        if entry is None:
            _LOGGER.info("No grid named %s in the search index", display_name)
            return None
        self.viewport.set_view(entry.centroid.lat, entry.centroid.lng, self.cfg.session.search_zoom)
        self.highlight_feature(entry.feature)
        return entry

    def highlight_feature(self, feature: GridFeature) -> HighlightInstruction:
        self.clear_highlight()
        duration_s = self.cfg.session.highlight_seconds
        highlight = HighlightInstruction(
            feature_id=feature.id,
            shape=highlight_shape(feature, self.cfg.style),
            duration_s=duration_s,
        )
        self._highlight = highlight
        self.sink.draw_highlight(highlight)
        generation = self._generation
        self._highlight_timer = self.scheduler.call_later(
            duration_s,
            lambda: self._expire_highlight(generation, highlight),
        )
        return highlight

    def clear_highlight(self) -> None:
        if self._highlight_timer is not None:
            self._highlight_timer.cancel()
            self._highlight_timer = None
        if self._highlight is not None:
            self._highlight = None
            self.sink.clear_highlight()

    def _expire_highlight(self, generation: int, highlight: HighlightInstruction) -> None:
        if generation != self._generation or self._highlight is not highlight:
            return
        self._highlight_timer = None
        self._highlight = None
        self.sink.clear_highlight()

    def _run_scheduled_recompute(self, generation: int) -> None:
        if self._disposed or generation != self._generation:
            _LOGGER.debug("Dropping stale recompute from generation %d", generation)
            return
        self.recompute()

    def _emit(self, instructions: DrawInstructions) -> DrawInstructions:
        self._instructions = instructions
        self.sink.draw(instructions)
        # Grid redraws must never cover the overlay.
        if self._coverage is not None:
            self.sink.draw_coverage(self._coverage)
        _LOGGER.debug(
            "Rendered %d grids as %s%s",
            instructions.rendered_count,
            instructions.mode.value,
            " with labels" if instructions.labels_enabled else "",
        )
        return instructions

    def _apply_coverage_style(self) -> None:
        if self.overlay is None:
            return
        self._coverage = self._styler.restyle(self.overlay, self.active_base_layer)
        self.sink.draw_coverage(self._coverage)

