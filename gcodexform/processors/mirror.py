"""
Mirror processor

Reflects the toolpath across the line (or plane) through a centre point
perpendicular to one axis: new = 2 * centre - old. Arcs are always expanded
into chords first, since reflection reverses their direction.
"""

from __future__ import annotations

from collections.abc import Mapping

from gcodexform.gcode.coordinates import PartialPosition, Position

from .base import check_options, partial_position_from_options
from .registry import register_processor
from .transform import TransformProcessor

MIRROR_AXES = ("X", "Y")


@register_processor("mirror")
class MirrorProcessor(TransformProcessor):
    """Mirror the toolpath across an axis through a centre point"""

    def __init__(self, center: PartialPosition | Position, axis: str = "X", **kwargs):
        """
        Args:
            center: Point the mirror line passes through; needs a value on `axis`
            axis: Axis whose coordinates are reflected ('X' or 'Y')
            **kwargs: TransformProcessor options (arc_tolerance, parser)
        """
        super().__init__(**kwargs)
        axis = axis.upper()
        if axis not in MIRROR_AXES:
            raise ValueError(f"Mirror axis must be one of {', '.join(MIRROR_AXES)}, got {axis!r}")
        if isinstance(center, Position):
            center = PartialPosition.from_position(center)
        if center.get(axis) is None:
            raise ValueError(f"Mirror centre needs a {axis} coordinate")
        self.center = center
        self.axis = axis

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> MirrorProcessor:
        check_options(options, ("x", "y", "units", "axis", "arc_tolerance"), "mirror")
        return cls(
            partial_position_from_options(options),
            axis=options.get("axis") or "X",
            **cls._arc_kwargs(options),
        )

    def transform_point(self, point: Position) -> Position:
        center = self.center.to(point.units).get(self.axis)
        return point.with_axes({self.axis: 2 * center - point.get(self.axis)})

    def get_help(self) -> str:
        return f"Mirrors the model across {self.axis}={self.center.get(self.axis):g} ({self.center.units.name.lower()})"
