"""Case-insensitive substring search over grid names."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from .geometry import centroid
from .models import GridFeature, SearchIndexEntry

DEFAULT_SEARCH_LIMIT = 10

_LOGGER = logging.getLogger("gridexplorer.search")


class SearchState(enum.Enum):
    NO_QUERY = "no_query"
    NO_MATCHES = "no_matches"
    MATCHES = "matches"


@dataclass(frozen=True, slots=True)
class SearchResponse:
    query: str
    entries: tuple[SearchIndexEntry, ...]
    state: SearchState

    def rows(self) -> list[dict[str, Any]]:
        return [
            {
                "displayName": entry.display_name,
                "lat": entry.centroid.lat,
                "lng": entry.centroid.lng,
            }
            for entry in self.entries
        ]


class SearchIndex:
    """Built once per catalog; entries keep catalog order."""

    def __init__(self, entries: Iterable[SearchIndexEntry], *, limit: int = DEFAULT_SEARCH_LIMIT) -> None:
        self.entries: tuple[SearchIndexEntry, ...] = tuple(entries)
        self.limit = limit

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def build(
        cls,
        features: Iterable[GridFeature],
        *,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> SearchIndex:
        entries: list[SearchIndexEntry] = []
        for feature in features:
            center = centroid(feature)
            if center is None:
                continue
            entries.append(
                SearchIndexEntry(
                    normalized_name=feature.id.upper(),
                    display_name=feature.id,
                    centroid=center,
                    feature=feature,
                )
            )
        _LOGGER.info("Built search index with %d grids", len(entries))
        return cls(entries, limit=limit)

    def search(self, query: str | None) -> tuple[SearchIndexEntry, ...]:
        needle = normalize_query(query)
        if not needle:
            return ()
        out: list[SearchIndexEntry] = []
        for entry in self.entries:
            if needle in entry.normalized_name:
                out.append(entry)
                if len(out) >= self.limit:
                    break
        return tuple(out)

    def query(self, text: str | None) -> SearchResponse:
        needle = normalize_query(text)
        if not needle:
            return SearchResponse(query="", entries=(), state=SearchState.NO_QUERY)
        entries = self.search(needle)
        state = SearchState.MATCHES if entries else SearchState.NO_MATCHES
        return SearchResponse(query=needle, entries=entries, state=state)

    def lookup_by_display_name(self, name: str) -> SearchIndexEntry | None:
        for entry in self.entries:
            if entry.display_name == name:
                return entry
        return None


def normalize_query(query: str | None) -> str:
    if not query:
        return ""
    return query.strip().upper()
