"""
Scale processor

Scales the toolpath about a centre point with a separate factor per axis.
Arcs stay arcs when both in-plane factors are equal and positive (the
radius and centre offsets scale with them); otherwise they become ellipses
and are expanded into chords first.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from gcodexform.gcode.coordinates import AXES, Position
from gcodexform.gcode.utils import PLANE_AXES

from .base import check_options, position_from_options, typed
from .registry import register_processor
from .transform import TransformProcessor


@register_processor("scale")
class ScaleProcessor(TransformProcessor):
    """Scale the toolpath about a centre point"""

    def __init__(self, factors: Mapping[str, float] | float, center: Position | None = None, **kwargs):
        """
        Args:
            factors: One factor for X, Y and Z, or a mapping of axis -> factor
            center: Fixed point of the scaling (origin if None)
            **kwargs: TransformProcessor options (arc_tolerance, parser)

        Raises:
            ValueError: Zero, non-finite or unknown-axis factors
        """
        super().__init__(**kwargs)
        if isinstance(factors, Mapping):
            factors = {axis.upper(): float(value) for axis, value in factors.items()}
        else:
            factors = {axis: float(factors) for axis in ("X", "Y", "Z")}

        for axis, value in factors.items():
            if axis not in AXES:
                raise ValueError(f"Unknown scale axis {axis!r}")
            if value == 0 or not math.isfinite(value):
                raise ValueError(f"Scale factor for {axis} must be finite and non-zero, got {value}")

        self.factors = {axis: factors.get(axis, 1.0) for axis in AXES}
        self.center = center or Position()

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> ScaleProcessor:
        check_options(
            options,
            ("factor", "fx", "fy", "fz", "x", "y", "z", "units", "arc_tolerance"),
            "scale",
        )
        factor = typed(options.get("factor"))
        factors = {} if factor is None else {axis: factor for axis in ("X", "Y", "Z")}
        for key in ("fx", "fy", "fz"):
            value = typed(options.get(key))
            if value is not None:
                factors[key[1].upper()] = value
        if not factors:
            raise ValueError("scale requires factor or fx/fy/fz options")
        return cls(factors, position_from_options(options), **cls._arc_kwargs(options))

    def transform_point(self, point: Position) -> Position:
        center = self.center.to(point.units)
        return point.with_axes(
            {
                axis: center.get(axis) + factor * (point.get(axis) - center.get(axis))
                for axis, factor in self.factors.items()
                if factor != 1.0
            }
        )

    def keeps_arc(self, command) -> bool:
        u_axis, v_axis, _ = PLANE_AXES[command.plane]
        return self.factors[u_axis] == self.factors[v_axis] > 0

    def arc_radius_factor(self, command) -> float:
        return self.factors[PLANE_AXES[command.plane][0]]
