"""Tests for the windowed context layout.

WHY: The context panes must show the same lines no matter where the
cursor sits inside them. A window that starts mid-line, or a break rule
that depends on tokens outside the window, makes text visibly jump
while reading.

HOW: Lay out LONG_DOCUMENT, plain multi-paragraph prose and one run-on
paragraph at many cursor positions and compare each frame's lines to a
whole-document layout (window_bounds patched to the full range). Smaller inline documents pin down the break rules.
"""

import pytest

from rsvp_reader.view import layout
from rsvp_reader.view.layout import (
    WINDOW_AHEAD,
    WINDOW_BEHIND,
    WINDOW_QUANTUM,
    DocLine,
    compute_lines,
    find_cursor_line,
    is_forced_anchor,
    is_line_anchor,
    window_bounds,
)


def _index_lines(lines):
    """Non-blank lines as tuples of global token indexes."""
    return [tuple(i for i, _ in line.tokens) for line in lines if not line.is_blank]


def _words(lines):
    return [
        None if line.is_blank else " ".join(t.token.word for _, t in line.tokens)
        for line in lines
    ]


@pytest.fixture
def full_layout(monkeypatch):
    """Lay out a whole stream in one pass, ignoring the window."""

    def build(tokens, viewport_width=120, max_line_chars=80):
        with monkeypatch.context() as patch:
            patch.setattr(layout, "window_bounds", lambda toks, cursor: (0, len(toks)))
            return compute_lines(tokens, 0, viewport_width, max_line_chars)

    return build


class TestStability:
    def test_window_lines_match_whole_document(self, long_stream, full_layout):
        assert len(long_stream) > 2 * (WINDOW_AHEAD + WINDOW_BEHIND)
        full = set(_index_lines(full_layout(long_stream)))

        for cursor in (0, 1, 499, 500, 750, 999, 1000, 1249, 1250, 1777, len(long_stream) - 1):
            window = _index_lines(compute_lines(long_stream, cursor, 120, 80))
            # The last line may be cut by the window end.
            for line in window[:-1]:
                assert line in full, f"cursor {cursor}: {line} not in full layout"

    def test_cursor_line_unchanged_while_advancing(self, long_stream):
        previous = None
        for cursor in range(700, 1300):
            lines = compute_lines(long_stream, cursor, 120, 80)
            line_index, _ = find_cursor_line(lines, cursor)
            current = _index_lines([lines[line_index]])[0]
            if previous is not None and cursor in previous:
                assert current == previous
            previous = current

    def test_idempotent(self, long_stream):
        first = compute_lines(long_stream, 1200, 100, 60)
        second = compute_lines(long_stream, 1200, 100, 60)
        assert first == second


class TestProseStability:
    """Documents made of nothing but paragraphs, where anchors are sparse."""

    @pytest.fixture(params=["prose_stream", "run_on_stream"])
    def stream(self, request):
        return request.getfixturevalue(request.param)

    def test_cursor_line_unchanged_across_quanta(self, stream):
        assert len(stream) > 1_000
        previous = None
        for cursor in range(600, len(stream) - 100):
            lines = compute_lines(stream, cursor, 120, 80)
            line_index, _ = find_cursor_line(lines, cursor)
            current = _index_lines([lines[line_index]])[0]
            if previous is not None and cursor in previous:
                assert current == previous, f"cursor {cursor} moved lines"
            previous = current

    def test_window_lines_match_whole_document(self, stream, full_layout):
        full = set(_index_lines(full_layout(stream)))
        for cursor in range(0, len(stream), 37):
            window = _index_lines(compute_lines(stream, cursor, 120, 80))
            for line in window[:-1]:
                assert line in full, f"cursor {cursor}: {line} not in full layout"

    def test_window_starts_at_paragraph_start(self, prose_stream):
        # Paragraphs are 120 words long, so the one holding token 500 starts at 480.
        start, end = window_bounds(prose_stream, 1000)
        assert (start, end) == (480, 1500)
        assert prose_stream[start].token.timing_hint.is_block_start

    def test_run_on_paragraph_gets_forced_anchors(self, run_on_stream):
        assert not is_forced_anchor(run_on_stream, 250)
        assert is_forced_anchor(run_on_stream, 500)
        assert is_forced_anchor(run_on_stream, 750)
        assert not is_forced_anchor(run_on_stream, 501)
        assert window_bounds(run_on_stream, 1000) == (500, 1500)

    def test_forced_break_adds_no_blank_line(self, run_on_stream, full_layout):
        lines = full_layout(run_on_stream)
        assert not any(line.is_blank for line in lines)
        starts = [line.tokens[0][0] for line in lines]
        assert 500 in starts
        assert 750 in starts


class TestWindowBounds:
    def test_start_of_document(self, long_stream):
        assert window_bounds(long_stream, 0) == (0, WINDOW_AHEAD)

    def test_quantized_start(self, long_stream):
        assert window_bounds(long_stream, 1000)[0] == window_bounds(long_stream, 1249)[0]

    def test_start_is_an_anchor(self, long_stream):
        for cursor in (600, 1000, 1500, 2000):
            start, _end = window_bounds(long_stream, cursor)
            assert is_line_anchor(long_stream, start)
            assert start <= cursor

    def test_size_bounded_and_independent_of_length(self, long_stream):
        limit = WINDOW_BEHIND + 2 * WINDOW_QUANTUM + WINDOW_AHEAD
        for cursor in range(0, len(long_stream), 97):
            start, end = window_bounds(long_stream, cursor)
            assert end - start <= limit
            assert start <= cursor < end
        assert window_bounds(long_stream[:1600], 1000) == window_bounds(long_stream, 1000)

    def test_empty_stream(self):
        assert window_bounds([], 0) == (0, 0)
        assert compute_lines([], 0, 80, 80) == []


class TestBreaks:
    def test_blank_line_after_block_change(self, timed_stream):
        lines = compute_lines(timed_stream("# first head\n\nsecond para"), 0, 120, 80)
        assert _words(lines) == ["first head", None, "second para"]

    def test_consecutive_paragraphs_break(self, timed_stream):
        lines = compute_lines(timed_stream("first para\n\nsecond para"), 0, 120, 80)
        assert _words(lines) == ["first para", None, "second para"]

    def test_overflow_adds_no_blank_line(self, timed_stream):
        stream = timed_stream(" ".join(["word"] * 30))
        lines = compute_lines(stream, 0, 200, 20)
        assert len(lines) > 1
        assert not any(line.is_blank for line in lines)
        for line in lines:
            assert sum(len(t.token.word) + 1 for _, t in line.tokens) <= 20

    def test_viewport_narrower_than_context_width(self, timed_stream):
        stream = timed_stream(" ".join(["abcd"] * 30))
        lines = compute_lines(stream, 0, 31, 80)
        # 31 columns minus padding, prefix and gutter leaves 25 characters.
        assert all(len(line.tokens) == 5 for line in lines[:-1])

    def test_overlong_word_gets_its_own_line(self, timed_stream):
        stream = timed_stream("a " + "x" * 40 + " b")
        lines = compute_lines(stream, 0, 200, 20)
        assert _words(lines) == ["a", "x" * 40, "b"]

    def test_table_rows_break_but_cells_do_not(self, timed_stream):
        stream = timed_stream("| a | b |\n|---|---|\n| c | d |")
        lines = compute_lines(stream, 0, 120, 80)
        assert _words(lines) == ["a b", None, "c d"]

    def test_table_entry_and_exit_break(self, timed_stream):
        stream = timed_stream("before\n\n| a | b |\n|---|---|\n| c | d |\n\nafter")
        lines = compute_lines(stream, 0, 120, 80)
        assert _words(lines) == ["before", None, "a b", None, "c d", None, "after"]

    def test_each_list_item_on_its_own_line(self, timed_stream):
        stream = timed_stream("- one\n- two\n- three")
        lines = compute_lines(stream, 0, 120, 80)
        assert _words(lines) == ["one", None, "two", None, "three"]

    def test_consecutive_headings_break(self, timed_stream):
        lines = compute_lines(timed_stream("# One\n\n# Two"), 0, 120, 80)
        assert _words(lines) == ["One", None, "Two"]

    def test_heading_then_paragraph(self, timed_stream):
        stream = timed_stream("# Title\n\nBody text here.")
        lines = compute_lines(stream, 0, 120, 80)
        assert _words(lines) == ["Title", None, "Body text here."]


class TestAnchors:
    def test_first_token_is_anchor(self, timed_stream):
        assert is_line_anchor(timed_stream("just words"), 0)

    def test_mid_paragraph_is_not_anchor(self, timed_stream):
        assert not is_line_anchor(timed_stream("just some words"), 1)

    def test_block_change_and_list_item_are_anchors(self, timed_stream):
        stream = timed_stream("para\n\n- one\n- two")
        assert is_line_anchor(stream, 1)
        assert is_line_anchor(stream, 2)

    def test_paragraph_start_is_anchor(self, timed_stream):
        stream = timed_stream("first para\n\nsecond para")
        assert is_line_anchor(stream, 2)
        assert not is_line_anchor(stream, 3)


class TestFindCursorLine:
    def test_locates_line_and_word(self, timed_stream):
        lines = compute_lines(timed_stream("# first head\n\nsecond para"), 0, 120, 80)
        assert find_cursor_line(lines, 3) == (2, 1)
        assert find_cursor_line(lines, 0) == (0, 0)

    def test_absent_cursor_falls_back_to_origin(self):
        assert find_cursor_line([DocLine.blank()], 42) == (0, 0)
        assert find_cursor_line([], 0) == (0, 0)
