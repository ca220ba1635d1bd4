"""Tests for windowing and truncation."""

import pytest

from datadog_mcp.paging import clamp_limit, cursor_page, truncate_series, window

from tests.conftest import make_series


class TestWindow:
    """Tests for offset windowing."""

    def test_last_partial_page(self):
        page = window(list(range(150)), offset=100, limit=50)

        assert page.items == list(range(100, 150))
        assert page.total_count == 150
        assert page.window_start == 100
        assert page.has_more is False
        assert page.next_offset is None

    def test_first_page(self):
        page = window(list(range(150)), offset=0, limit=50)

        assert page.items == list(range(50))
        assert page.has_more is True
        assert page.next_offset == 50

    def test_default_limit(self):
        page = window(list(range(150)))

        assert len(page.items) == 100
        assert page.has_more is True

    @pytest.mark.parametrize("limit", [None, 0, -5])
    def test_non_positive_limit_uses_default(self, limit):
        page = window(list(range(150)), limit=limit)
        assert len(page.items) == 100

    def test_negative_offset_treated_as_zero(self):
        page = window(list(range(10)), offset=-3, limit=5)

        assert page.items == [0, 1, 2, 3, 4]
        assert page.window_start == 0

    def test_offset_past_end(self):
        page = window(list(range(10)), offset=25, limit=5)

        assert page.items == []
        assert page.total_count == 10
        assert page.window_start == 10
        assert page.has_more is False

    def test_empty_collection(self):
        page = window([], offset=0, limit=10)

        assert page.items == []
        assert page.total_count == 0
        assert page.has_more is False

    @pytest.mark.parametrize("size", [0, 1, 5, 100, 101])
    @pytest.mark.parametrize("offset", [0, 1, 50, 99, 100, 200])
    @pytest.mark.parametrize("limit", [1, 10, 100])
    def test_window_invariants(self, size, offset, limit):
        items = list(range(size))
        page = window(items, offset=offset, limit=limit)

        assert len(page.items) <= limit
        assert page.window_start + len(page.items) <= size
        assert page.has_more == (page.window_start + len(page.items) < size)
        assert page.items == items[page.window_start : page.window_start + len(page.items)]


class TestCursorPage:
    """Tests for cursor pass-through."""

    def test_cursor_passed_through(self):
        page = cursor_page(["a", "b"], "opaque-token==")

        assert page.items == ["a", "b"]
        assert page.next_cursor == "opaque-token=="
        assert page.has_more is True
        assert page.total_count is None
        assert page.next_offset is None

    @pytest.mark.parametrize("token", [None, ""])
    def test_no_cursor_means_last_page(self, token):
        page = cursor_page(["a"], token)

        assert page.next_cursor is None
        assert page.has_more is False


class TestClampLimit:
    """Tests for clamp_limit."""

    def test_within_bounds(self):
        assert clamp_limit(20, default=50, maximum=1000) == 20

    def test_capped(self):
        assert clamp_limit(5000, default=50, maximum=1000) == 1000

    def test_default(self):
        assert clamp_limit(None, default=50) == 50
        assert clamp_limit(0, default=50) == 50


class TestTruncateSeries:
    """Tests for truncate_series."""

    def test_series_cap(self):
        series = [make_series([1.0], metric=f"m{i}") for i in range(150)]

        kept, info = truncate_series(series, max_series=100)

        assert len(kept) == 100
        assert kept[0].metric == "m0"
        assert info.total_series == 150
        assert info.returned_series == 100
        assert info.series_dropped == 50
        assert info.truncated is True

    def test_point_cap(self):
        series = [make_series([float(v) for v in range(10)]), make_series([1.0, 2.0])]

        kept, info = truncate_series(series, max_data_points=4)

        assert [p.value for p in kept[0].data_points] == [0.0, 1.0, 2.0, 3.0]
        assert len(kept[1].data_points) == 2
        assert info.points_dropped == 6
        assert info.series_dropped == 0
        assert info.truncated is True

    def test_input_not_modified(self):
        original = make_series([float(v) for v in range(10)])

        truncate_series([original], max_data_points=3)

        assert len(original.data_points) == 10

    def test_no_truncation(self):
        series = [make_series([1.0, 2.0])]

        kept, info = truncate_series(series)

        assert kept == series
        assert info.truncated is False
