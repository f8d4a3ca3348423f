"""
Rotate processor

Rotates the toolpath in the XY plane about a centre point using a
homogeneous transform matrix (translate to the centre, rotate, translate
back). Positive angles rotate counter-clockwise seen from +Z.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

import numpy as np

from gcodexform.gcode.coordinates import Position

from .base import check_options, position_from_options, typed
from .registry import register_processor
from .transform import TransformProcessor


@register_processor("rotate")
class RotateProcessor(TransformProcessor):
    """Rotate the toolpath about a centre point in the XY plane"""

    def __init__(self, angle: float, center: Position | None = None, **kwargs):
        """
        Args:
            angle: Rotation in degrees, counter-clockwise positive
            center: Rotation centre (origin if None); only X and Y are used
            **kwargs: TransformProcessor options (arc_tolerance, parser)
        """
        super().__init__(**kwargs)
        if not math.isfinite(angle):
            raise ValueError(f"Rotation angle must be finite, got {angle}")
        self.angle = angle
        self.center = center or Position()
        theta = math.radians(angle)
        self._rotation = np.array(
            [
                [math.cos(theta), -math.sin(theta), 0.0],
                [math.sin(theta), math.cos(theta), 0.0],
                [0.0, 0.0, 1.0],
            ]
        )

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> RotateProcessor:
        check_options(options, ("angle", "x", "y", "units", "arc_tolerance"), "rotate")
        angle = typed(options.get("angle"))
        if angle is None:
            raise ValueError("rotate requires an angle option (degrees)")
        return cls(angle, position_from_options(options), **cls._arc_kwargs(options))

    def _matrix(self, center: Position) -> np.ndarray:
        to_origin = np.array([[1.0, 0.0, -center.x], [0.0, 1.0, -center.y], [0.0, 0.0, 1.0]])
        back = np.array([[1.0, 0.0, center.x], [0.0, 1.0, center.y], [0.0, 0.0, 1.0]])
        return back @ self._rotation @ to_origin

    def transform_point(self, point: Position) -> Position:
        matrix = self._matrix(self.center.to(point.units))
        x, y, _ = matrix @ np.array([point.x, point.y, 1.0])
        return point.with_axes({"X": x, "Y": y})

    def keeps_arc(self, command) -> bool:
        return command.plane == "G17"

    def get_help(self) -> str:
        return f"Rotates the model {self.angle:g} degrees about X{self.center.x:g} Y{self.center.y:g}"
