"""
Translate processor

Shifts the whole toolpath by a fixed offset. Arcs are kept as arcs:
incremental centre offsets are unchanged and absolute (G90.1) centres move
with the path.
"""

from __future__ import annotations

from collections.abc import Mapping

from gcodexform.gcode.coordinates import Position

from .base import check_options, position_from_options
from .registry import register_processor
from .transform import TransformProcessor


@register_processor("translate")
class TranslateProcessor(TransformProcessor):
    """Shift the toolpath by a fixed offset"""

    def __init__(self, offset: Position, **kwargs):
        super().__init__(**kwargs)
        self.offset = offset

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> TranslateProcessor:
        check_options(options, ("x", "y", "z", "a", "b", "c", "units", "arc_tolerance"), "translate")
        return cls(position_from_options(options), **cls._arc_kwargs(options))

    def transform_point(self, point: Position) -> Position:
        return point + self.offset

    def keeps_arc(self, command) -> bool:
        return True
