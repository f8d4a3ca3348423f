"""
Arc expansion

Replaces G2/G3 arcs with G1 chords whose distance from the true arc stays
within a chord error tolerance. Helical and spiral arcs are supported: the
out-of-plane axis, rotary axes and the radius are interpolated linearly in
angle, and the last chord ends exactly at the declared end point.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from enum import Enum

from gcodexform import config as cfg
from gcodexform.config import TRACE
from gcodexform.gcode.coordinates import Position, Units, convert
from gcodexform.gcode.parser import GcodeParser, ParsedCommand
from gcodexform.gcode.state import GcodeState
from gcodexform.gcode.utils import (
    OFFSET_WORDS,
    PLANE_AXES,
    ijk_to_center,
    interpolate_arc,
    quantize,
    radius_to_center,
    rounding_error,
)
from gcodexform.utils.errors import GeometryError

from .base import CommandProcessor, check_options, render_path, typed
from .registry import register_processor

logger = logging.getLogger(__name__)


class ArcSubdivision(str, Enum):
    """How arc segments are sized"""

    CHORD_LENGTH = "chord"  # chord error tolerance only
    ANGULAR = "angular"  # chord error tolerance, capped by max_segment_angle


@register_processor("arc")
class ArcExpander(CommandProcessor):
    """Expand G2/G3 arcs into G1 chords within a chord error tolerance"""

    def __init__(
        self,
        tolerance: float = cfg.ARC_TOLERANCE_MM,
        subdivision: ArcSubdivision | str = ArcSubdivision.CHORD_LENGTH,
        max_segment_angle: float = cfg.MAX_SEGMENT_ANGLE_DEG,
        parser: GcodeParser | None = None,
    ):
        """
        Args:
            tolerance: Maximum chord error in mm
            subdivision: CHORD_LENGTH or ANGULAR
            max_segment_angle: Largest angle of one chord in degrees (ANGULAR only)
            parser: Parser used for reading and rendering commands
        """
        if tolerance <= 0:
            raise ValueError(f"Arc tolerance must be positive, got {tolerance}")
        if max_segment_angle <= 0:
            raise ValueError(f"Maximum segment angle must be positive, got {max_segment_angle}")
        self.tolerance = tolerance
        self.subdivision = ArcSubdivision(subdivision)
        self.max_segment_angle = max_segment_angle
        self.parser = parser or GcodeParser()
        if tolerance <= rounding_error(self.parser.precision):
            raise ValueError(
                f"Arc tolerance {tolerance} mm is not larger than the rounding of "
                f"{self.parser.precision} output decimals"
            )

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> ArcExpander:
        check_options(options, ("tolerance", "mode", "max_angle"), "arc")
        kwargs = {}
        if typed(options.get("tolerance")) is not None:
            kwargs["tolerance"] = typed(options["tolerance"])
        if options.get("mode"):
            kwargs["subdivision"] = ArcSubdivision(options["mode"].lower())
        if typed(options.get("max_angle")) is not None:
            kwargs["max_segment_angle"] = typed(options["max_angle"])
        return cls(**kwargs)

    def process(self, command: str, state: GcodeState) -> list[str]:
        parsed = self.parser.parse(command, state)
        if not parsed.is_arc:
            return [command]

        points = self.segment_points(parsed)
        logger.log(TRACE, "arc_expand line=%r segments=%d", parsed.raw, len(points))
        return render_path(self.parser, parsed, parsed.start, points, "G1")

    def arc_center(self, command: ParsedCommand) -> tuple[float, float]:
        """
        In-plane arc centre in the command's units

        Raises:
            GeometryError: Both or neither of IJK and R given, or no centre fits R
        """
        u_axis, v_axis, _ = PLANE_AXES[command.plane]
        params = command.params
        has_offsets = any(word in params for word in ("I", "J", "K"))
        has_radius = "R" in params

        if has_offsets and has_radius:
            raise GeometryError("Arc gives both centre offsets (I/J/K) and a radius (R)", line=command.raw)
        if not has_offsets and not has_radius:
            raise GeometryError("Arc needs centre offsets (I/J/K) or a radius (R)", line=command.raw)

        start = (command.start.get(u_axis), command.start.get(v_axis))
        end = (command.end.get(u_axis), command.end.get(v_axis))

        if has_radius:
            slack = convert(cfg.ARC_RADIUS_TOLERANCE_MM, Units.MM, command.units)
            try:
                return radius_to_center(start, end, params["R"], command.clockwise, tolerance=slack)
            except GeometryError as e:
                raise GeometryError(e.original_message, line=command.raw) from e

        u_word, v_word = OFFSET_WORDS[u_axis], OFFSET_WORDS[v_axis]
        if command.is_arc_absolute:
            return params.get(u_word, start[0]), params.get(v_word, start[1])
        return ijk_to_center(start, (params.get(u_word, 0.0), params.get(v_word, 0.0)))

    def chord_tolerance(self, command: ParsedCommand) -> float:
        """
        Chord error left for the arc in the command's units once output rounding is paid for

        Raises:
            GeometryError: Rounding at the output precision alone exceeds the tolerance
        """
        budget = convert(self.tolerance, Units.MM, command.units) - rounding_error(self.parser.precision)
        if budget <= 0:
            raise GeometryError(
                f"Arc tolerance {self.tolerance} mm is below the output rounding in {command.units.name.lower()}",
                line=command.raw,
            )
        return budget

    def segment_points(self, command: ParsedCommand, quantized: bool = True) -> list[Position]:
        """
        End points of the chords replacing an arc, in the command's units

        Intermediate points are rounded to the output precision unless
        quantized is False (callers that move the points first round them
        afterwards). Segments are sized so the rounded chords still stay
        within the tolerance.

        Returns:
            Positions in travel order; the last one equals command.end

        Raises:
            GeometryError: Degenerate or inconsistent arc
        """
        axes = self._axis_order(command.plane)
        center = self.arc_center(command)

        turns = command.params.get("P", 1)
        if turns != int(turns) or turns < 1:
            raise GeometryError(f"Arc turn count P must be a positive integer, got {turns:g}", line=command.raw)

        start = [command.start.get(axis) for axis in axes]
        end = [command.end.get(axis) for axis in axes]
        max_angle = math.radians(self.max_segment_angle) if self.subdivision is ArcSubdivision.ANGULAR else None

        try:
            points = interpolate_arc(
                start,
                end,
                center,
                command.clockwise,
                self.chord_tolerance(command),
                turns=int(turns),
                max_angle=max_angle,
                radius_tolerance=convert(cfg.ARC_RADIUS_TOLERANCE_MM, Units.MM, command.units),
            )
        except GeometryError as e:
            raise GeometryError(e.original_message, line=command.raw) from e

        if quantized:
            points = quantize(
                points,
                self.parser.precision,
                origin=None if command.is_absolute else start,
            )
        return [command.start.with_axes(dict(zip(axes, row))) for row in points]

    @staticmethod
    def _axis_order(plane: str) -> list[str]:
        u_axis, v_axis, w_axis = PLANE_AXES[plane]
        return [u_axis, v_axis, w_axis, "A", "B", "C"]
