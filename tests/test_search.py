"""Tests for the grid name search index."""

from __future__ import annotations

from gridexplorer.models import GridCatalog, GridFeature
from gridexplorer.search import SearchIndex, SearchState, normalize_query


class TestSearchIndex:
    def test_substring_match_keeps_catalog_order(self, make_square):
        catalog = GridCatalog(
            features=(
                make_square("01CCV", 1.0, 1.0),
                make_square("02XXX", 2.0, 2.0),
                make_square("10CCV", 3.0, 3.0),
            )
        )
        index = SearchIndex.build(catalog)
        assert [entry.display_name for entry in index.search("CCV")] == ["01CCV", "10CCV"]

    def test_case_insensitive(self, make_square):
        index = SearchIndex.build([make_square("01CCV", 1.0, 1.0)])
        assert index.search("ccv") == index.search("CCV")
        assert index.search(" 01c ")[0].display_name == "01CCV"

    def test_empty_query_returns_nothing(self, make_square):
        index = SearchIndex.build([make_square("01CCV", 1.0, 1.0)])
        assert index.search("") == ()
        assert index.search(None) == ()
        assert index.search("   ") == ()

    def test_result_limit(self, make_square):
        features = [make_square(f"{i:02d}ABC", float(i), 0.0) for i in range(1, 16)]
        index = SearchIndex.build(features)
        results = index.search("ABC")
        assert len(results) == 10
        assert results[-1].display_name == "10ABC"
        assert len(SearchIndex.build(features, limit=3).search("ABC")) == 3

    def test_entry_carries_centroid(self, make_square):
        entry = SearchIndex.build([make_square("53JMM", 134.5, -24.8)]).search("53J")[0]
        assert abs(entry.centroid.lat + 24.8) < 1e-9
        assert abs(entry.centroid.lng - 134.5) < 1e-9
        assert entry.normalized_name == "53JMM"

    def test_features_without_centroid_are_not_indexed(self, make_square):
        broken = GridFeature(id="99BAD", geometry_kind="Polygon", parts=((),))
        index = SearchIndex.build([broken, make_square("01CCV", 1.0, 1.0)])
        assert len(index) == 1
        assert index.search("BAD") == ()


class TestSearchResponse:
    def test_states(self, make_square):
        index = SearchIndex.build([make_square("01CCV", 1.0, 1.0)])
        assert index.query("").state is SearchState.NO_QUERY
        assert index.query("zzz").state is SearchState.NO_MATCHES
        response = index.query("ccv")
        assert response.state is SearchState.MATCHES
        assert response.query == "CCV"

    def test_rows_are_display_rows(self, make_square):
        rows = SearchIndex.build([make_square("01CCV", 1.0, 2.0)]).query("01").rows()
        assert len(rows) == 1
        assert rows[0]["displayName"] == "01CCV"
        assert abs(rows[0]["lat"] - 2.0) < 1e-9
        assert abs(rows[0]["lng"] - 1.0) < 1e-9

    def test_lookup_by_display_name(self, make_square):
        index = SearchIndex.build([make_square("01CCV", 1.0, 1.0)])
        assert index.lookup_by_display_name("01CCV").feature.id == "01CCV"
        assert index.lookup_by_display_name("01ccv") is None


def test_normalize_query():
    assert normalize_query("  53jmm ") == "53JMM"
    assert normalize_query(None) == ""
