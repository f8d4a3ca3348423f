"""
Line splitter

Breaks long G1 moves into equal pieces no longer than a maximum length,
e.g. so later non-linear transforms can bend them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from gcodexform import config as cfg
from gcodexform.config import TRACE
from gcodexform.gcode.coordinates import AXES, Units, convert
from gcodexform.gcode.parser import GcodeParser
from gcodexform.gcode.state import GcodeState
from gcodexform.gcode.utils import quantize, split_into_segments

from .base import CommandProcessor, check_options, render_path, typed
from .registry import register_processor

logger = logging.getLogger(__name__)


@register_processor("split")
class LineSplitter(CommandProcessor):
    """Split G1 moves longer than a maximum length into equal pieces"""

    def __init__(self, max_length: float = cfg.LINE_SPLIT_MAX_LENGTH_MM, parser: GcodeParser | None = None):
        """
        Args:
            max_length: Longest allowed piece in mm
            parser: Parser used for reading and rendering commands
        """
        if max_length <= 0:
            raise ValueError(f"Maximum segment length must be positive, got {max_length}")
        self.max_length = max_length
        self.parser = parser or GcodeParser()

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> LineSplitter:
        check_options(options, ("max_length",), "split")
        max_length = typed(options.get("max_length"))
        return cls() if max_length is None else cls(max_length)

    def process(self, command: str, state: GcodeState) -> list[str]:
        parsed = self.parser.parse(command, state)
        if parsed.code != "G1":
            return [command]

        start = [parsed.start.get(axis) for axis in AXES]
        end = [parsed.end.get(axis) for axis in AXES]
        rows = split_into_segments(start, end, convert(self.max_length, Units.MM, parsed.units))
        if len(rows) == 1:
            return [command]

        rows = quantize(rows, self.parser.precision, origin=None if parsed.is_absolute else start)
        points = [parsed.start.with_axes(dict(zip(AXES, row))) for row in rows]
        logger.log(TRACE, "split line=%r pieces=%d", parsed.raw, len(points))
        return render_path(self.parser, parsed, parsed.start, points, "G1")
