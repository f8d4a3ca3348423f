"""
Tests for the structural processors (splitting, feed override, clean-up).
"""

import pytest

from gcodexform.gcode.coordinates import Position
from gcodexform.gcode.state import default_state
from gcodexform.processors.cleanup import CommentRemover, DecimalRounder, Normalizer
from gcodexform.processors.feed_override import FeedOverrideProcessor
from gcodexform.processors.line_splitter import LineSplitter

pytestmark = pytest.mark.unit


class TestLineSplitter:
    def test_splits_long_move(self, state):
        lines = LineSplitter(10).process("G1 X25 F100", state)
        assert lines == ["G1 X8.3333 F100", "G1 X16.6667", "G1 X25"]

    def test_incremental_pieces_sum_to_move(self, parser):
        state = default_state(positioning_mode="G91")
        lines = LineSplitter(10).process("G1 X25", state)
        assert len(lines) == 3
        total = sum(parser.parse(line, state).axes["X"] for line in lines)
        assert total == pytest.approx(25, abs=1e-9)

    @pytest.mark.parametrize("text", ["G1 X5", "G0 X100", "G2 X10 Y0 I5 J0", "M3"])
    def test_other_commands_pass_through(self, state, text):
        assert LineSplitter(10).process(text, state) == [text]

    def test_length_in_line_units(self, state):
        # 2 inches = 50.8 mm split in pieces of at most 10 mm
        assert len(LineSplitter(10).process("G20 G1 X2", state)) == 6

    def test_invalid_length(self):
        with pytest.raises(ValueError):
            LineSplitter(0)


class TestFeedOverride:
    def test_scales_feed(self, state):
        assert FeedOverrideProcessor(50).process("G1 X10 F200", state) == ["G1 X10 F100"]

    def test_feed_only_line(self, state):
        assert FeedOverrideProcessor(150).process("F1000", state) == ["F1500"]

    def test_lines_without_feed_untouched(self, state):
        assert FeedOverrideProcessor(50).process("g1 x10.000", state) == ["g1 x10.000"]

    @pytest.mark.parametrize("percent", [-1, 201])
    def test_out_of_range(self, percent):
        with pytest.raises(ValueError):
            FeedOverrideProcessor(percent)


class TestCommentRemover:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("G1 X10 (cut) ; more", ["G1 X10"]),
            ("(header only)", []),
            ("; note", []),
            ("G1 (a) X1", ["G1 X1"]),
            ("G1 X1", ["G1 X1"]),
        ],
    )
    def test_strip(self, state, text, expected):
        assert CommentRemover().process(text, state) == expected


class TestDecimalRounder:
    def test_rounds(self, state):
        assert DecimalRounder(2).process("G1 X1.23456 Y2 F100.0", state) == ["G1 X1.23 Y2 F100"]

    def test_non_motion(self, state):
        assert DecimalRounder(1).process("G4 P0.26", state) == ["G4 P0.3"]

    def test_negative_decimals(self):
        with pytest.raises(ValueError):
            DecimalRounder(-1)


class TestNormalizer:
    def test_canonical(self, state):
        assert Normalizer().process("g1x10y20", state) == ["G1 X10 Y20"]

    def test_bad_line_unchanged(self, state):
        assert Normalizer().process("G1 X1Y", state) == ["G1 X1Y"]

    def test_incremental(self):
        state = default_state(positioning_mode="G91", position=Position(4, 4, 0))
        assert Normalizer().process("X1.50", state) == ["G0 X1.5"]
