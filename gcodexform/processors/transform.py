"""
Shared shape of the geometric transform processors.

A transform maps machine positions to machine positions. Moving commands
are parsed, both their start and end are transformed (so incremental output
is written as T(end) - T(start)), arcs are expanded into chords unless the
transform can keep them, and the result is rendered in the line's own
positioning mode with its other words intact.
"""

from __future__ import annotations

import logging
import math
from abc import abstractmethod
from collections.abc import Mapping

import numpy as np

from gcodexform import config as cfg
from gcodexform.config import TRACE
from gcodexform.gcode.coordinates import AXES, Position, Units
from gcodexform.gcode.parser import GcodeParser, ParsedCommand
from gcodexform.gcode.state import GcodeState
from gcodexform.gcode.utils import OFFSET_WORDS, PLANE_AXES, quantize
from gcodexform.utils.errors import GeometryError, ParseError, RenderError

from .arc_expander import ArcExpander
from .base import CommandProcessor, render_path, typed

logger = logging.getLogger(__name__)


class TransformProcessor(CommandProcessor):
    """Base for processors that move every point of the toolpath"""

    def __init__(
        self,
        arc_tolerance: float = cfg.ARC_TOLERANCE_MM,
        parser: GcodeParser | None = None,
        arc_expander: ArcExpander | None = None,
    ):
        """
        Args:
            arc_tolerance: Chord error (mm) used when arcs must be expanded
            parser: Parser used for reading and rendering commands
            arc_expander: Expander for arcs the transform cannot keep
        """
        self.parser = parser or GcodeParser()
        self.arc_expander = arc_expander or ArcExpander(tolerance=arc_tolerance, parser=self.parser)

    @staticmethod
    def _arc_kwargs(options: Mapping[str, str]) -> dict[str, float]:
        tolerance = typed(options.get("arc_tolerance"))
        return {} if tolerance is None else {"arc_tolerance": tolerance}

    @abstractmethod
    def transform_point(self, point: Position) -> Position:
        """
        Map one position; the result stays in the point's units
        """

    def keeps_arc(self, command: ParsedCommand) -> bool:
        """True when the transform maps this arc onto an arc of the same direction"""
        return False

    def arc_radius_factor(self, command: ParsedCommand) -> float:
        """Scale applied to the radius of a kept arc"""
        return 1.0

    def process(self, command: str, state: GcodeState) -> list[str]:
        parsed = self.parser.parse(command, state)
        if not parsed.is_motion:
            return [command]

        start = self._apply(parsed.start, parsed)

        if parsed.is_arc and self.keeps_arc(parsed):
            end = self._apply(parsed.end, parsed)
            words = self.transform_arc_words(parsed, start)
            lines = [self.parser.render_motion(parsed, start, end, arc_words=words)]
        else:
            if parsed.is_arc:
                points, code = self.arc_expander.segment_points(parsed, quantized=False), "G1"
            else:
                points, code = [parsed.end], parsed.code
            moved = [self._apply(point, parsed) for point in points]
            if len(moved) > 1:
                moved = self._requantize(moved, start, parsed)
            lines = render_path(self.parser, parsed, start, moved, code)

        logger.log(TRACE, "%s line=%r -> %d command(s)", self.name, parsed.raw, len(lines))
        return self._normalized(lines, start, state)

    def transform_arc_words(self, command: ParsedCommand, start: Position) -> dict[str, float]:
        """
        Centre words (or radius) of a kept arc after the transform

        Args:
            command: The arc being rewritten
            start: Transformed start point

        Returns:
            Arc words in output order (I/J/K or R, then P)
        """
        params = command.params
        words: dict[str, float] = {}

        if "R" in params:
            words["R"] = params["R"] * self.arc_radius_factor(command)
        else:
            u_axis, v_axis, _ = PLANE_AXES[command.plane]
            cu, cv = self.arc_expander.arc_center(command)
            center = self._apply(command.start.with_axes({u_axis: cu, v_axis: cv}), command)
            for axis in (u_axis, v_axis):
                value = center.get(axis)
                words[OFFSET_WORDS[axis]] = value if command.is_arc_absolute else value - start.get(axis)

        if "P" in params:
            words["P"] = params["P"]
        return words

    def _apply(self, point: Position, command: ParsedCommand) -> Position:
        moved = self.transform_point(point)
        if not all(math.isfinite(moved.get(axis)) for axis in AXES):
            raise GeometryError(f"{self.name} produced a non-finite coordinate", line=command.raw)
        return moved

    def _requantize(self, points: list[Position], start: Position, command: ParsedCommand) -> list[Position]:
        rows = np.array([[point.get(axis) for axis in AXES] for point in points])
        origin = None if command.is_absolute else [start.get(axis) for axis in AXES]
        rows = quantize(rows, self.parser.precision, origin=origin)
        return [point.with_axes(dict(zip(AXES, row))) for point, row in zip(points, rows)]

    def _normalized(self, lines: list[str], start: Position, state: GcodeState) -> list[str]:
        view = state.copy()
        view.position = start.to(Units.MM)
        out = []
        for line in lines:
            try:
                rendered = self.parser.parse(line, view)
                out.append(self.parser.render_canonical(rendered))
            except (ParseError, RenderError) as e:
                logger.warning(f"{self.name}: could not normalize {line!r} ({e}); emitting it as rendered")
                out.append(line)
                continue
            view.update(rendered)
        return out
