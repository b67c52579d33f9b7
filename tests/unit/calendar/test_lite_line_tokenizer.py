"""Unit tests for lite_line_tokenizer module."""

import pytest

from upcoming_lite.calendar.lite_line_tokenizer import (
    is_continuation,
    iter_logical_lines,
    parse_content_line,
    split_physical_lines,
    unfold_lines,
)

pytestmark = pytest.mark.unit


class TestSplitPhysicalLines:
    """Tests for split_physical_lines."""

    def test_splits_crlf_cr_and_lf(self):
        assert split_physical_lines("A:1\r\nB:2\rC:3\nD:4") == ["A:1", "B:2", "C:3", "D:4"]

    def test_keeps_leading_whitespace(self):
        assert split_physical_lines("A:1\r\n continued") == ["A:1", " continued"]

    def test_none_raises_type_error(self):
        with pytest.raises(TypeError):
            split_physical_lines(None)  # type: ignore[arg-type]


class TestUnfoldLines:
    """Tests for unfold_lines."""

    def test_removes_exactly_one_fold_marker(self):
        """Only the fold marker is removed, further whitespace is kept."""
        result = unfold_lines(["DESCRIPTION:Hello", "  continued text"])
        assert result == ["DESCRIPTION:Hello continued text"]

    def test_single_space_continuation(self):
        result = unfold_lines(["SUMMARY:Long", " er title"])
        assert result == ["SUMMARY:Longer title"]

    def test_tab_fold_marker(self):
        result = unfold_lines(["SUMMARY:Tab", "\tbed"])
        assert result == ["SUMMARY:Tabbed"]

    def test_multiple_continuations(self):
        result = unfold_lines(["URL:https://exa", " mple.com/", " path"])
        assert result == ["URL:https://example.com/path"]

    def test_continuation_at_start_is_dropped(self):
        assert unfold_lines([" orphan", "SUMMARY:x"]) == ["SUMMARY:x"]

    def test_continuation_after_begin_marker_is_dropped(self):
        result = unfold_lines(["BEGIN:VEVENT", " orphan", "SUMMARY:x"])
        assert result == ["BEGIN:VEVENT", "SUMMARY:x"]

    def test_continuation_skips_colon_less_line(self):
        result = unfold_lines(["SUMMARY:Hello", "X-BROKEN", " world"])
        assert result == ["SUMMARY:Hello world", "X-BROKEN"]

    def test_continuation_after_end_marker_is_dropped(self):
        result = unfold_lines(["SUMMARY:x", "END:VEVENT", "junk", " orphan"])
        assert result == ["SUMMARY:x", "END:VEVENT", "junk"]

    def test_indented_event_marker_is_not_a_continuation(self):
        assert not is_continuation("  BEGIN:VEVENT")
        assert unfold_lines(["SUMMARY:x", " END:VEVENT"]) == ["SUMMARY:x", " END:VEVENT"]


class TestParseContentLine:
    """Tests for parse_content_line."""

    def test_splits_at_first_colon_only(self):
        line = parse_content_line("URL:https://example.com:8443/path")
        assert line is not None
        assert line.name == "URL"
        assert line.value == "https://example.com:8443/path"

    def test_strips_parameters_from_name(self):
        line = parse_content_line("DTSTART;TZID=Europe/Brussels:20251224T160000")
        assert line is not None
        assert line.name == "DTSTART"
        assert line.params_segment == "DTSTART;TZID=Europe/Brussels"
        assert line.value == "20251224T160000"

    def test_raw_reassembles_full_line(self):
        text = "EXDATE;TZID=Europe/Brussels:20251224T160000,20251231T160000"
        line = parse_content_line(text)
        assert line is not None
        assert line.raw == text

    def test_empty_value(self):
        line = parse_content_line("LOCATION:")
        assert line is not None
        assert line.value == ""

    def test_line_without_colon_is_none(self):
        assert parse_content_line("GARBAGE LINE") is None


def test_iter_logical_lines_combines_both_stages():
    text = "BEGIN:VEVENT\r\nDESCRIPTION:one\r\n two\r\nEND:VEVENT\r\n"
    assert iter_logical_lines(text) == ["BEGIN:VEVENT", "DESCRIPTION:onetwo", "END:VEVENT", ""]
