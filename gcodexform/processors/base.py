"""
Base abstractions and helpers for processor implementations.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from gcodexform.gcode.coordinates import PartialPosition, Position, Units
from gcodexform.gcode.parser import GcodeParser, ParsedCommand
from gcodexform.gcode.state import GcodeState

logger = logging.getLogger(__name__)


# Option parsing utilities (lightweight, shared)
def _noneify(token: Any) -> str | None:
    if token is None:
        return None
    t = str(token).strip()
    return None if t == "" or t.upper() in ("NONE", "NULL") else t


def parse_float(token: Any) -> float | None:
    t = _noneify(token)
    return None if t is None else float(t)


def parse_bool(token: Any) -> bool:
    t = (str(token or "")).strip().lower()
    return t in ("1", "true", "yes", "on")


def typed(token: Any, type_=float):
    """Parse token with type, supporting None/Null/empty as None."""
    t = _noneify(token)
    if t is None:
        return None
    if type_ is bool:
        return parse_bool(t)
    return type_(t)


def check_options(options: Mapping[str, Any], allowed: Sequence[str], name: str) -> None:
    """Reject option keys a processor does not understand."""
    unknown = sorted(set(options) - set(allowed))
    if unknown:
        raise ValueError(
            f"{name} got unknown option(s) {', '.join(unknown)}; expected {', '.join(allowed) or 'none'}"
        )


def partial_position_from_options(options: Mapping[str, Any]) -> PartialPosition:
    """Build a PartialPosition from x/y/z/a/b/c and units options."""
    units = Units.from_name(options.get("units") or Units.MM)
    values = {axis: typed(options.get(axis)) for axis in ("x", "y", "z", "a", "b", "c")}
    return PartialPosition(units=units, **values)


def position_from_options(options: Mapping[str, Any]) -> Position:
    """Build a Position from x/y/z/a/b/c and units options, missing axes are zero."""
    partial = partial_position_from_options(options)
    return Position(
        *(partial.get(axis, 0.0) for axis in ("X", "Y", "Z", "A", "B", "C")),
        units=partial.units,
    )


class CommandProcessor(ABC):
    """
    Contract shared by every pipeline stage.

    A processor maps one command to a batch of commands given the modal
    state before that command. It never mutates the state it is handed.
    """

    # Set by the @register_processor decorator
    _registered_name: ClassVar[str | None] = None

    @property
    def name(self) -> str:
        return self._registered_name or type(self).__name__

    @abstractmethod
    def process(self, command: str, state: GcodeState) -> list[str]:
        """
        Rewrite one command

        Args:
            command: Command text
            state: Modal state before this command (read only)

        Returns:
            Commands to emit in order; [] drops the command

        Raises:
            ParseError: Command text is malformed
            GeometryError: Command geometry is degenerate
        """

    def get_help(self) -> str:
        """One line description of the processor"""
        doc = (type(self).__doc__ or "").strip()
        return doc.splitlines()[0] if doc else self.name

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> CommandProcessor:
        """
        Build the processor from string options (CLI 'name:key=value,...')

        Raises:
            ValueError: Unknown or invalid options
        """
        check_options(options, (), cls.__name__)
        return cls()


def render_path(
    parser: GcodeParser,
    command: ParsedCommand,
    start: Position,
    points: Sequence[Position],
    code: str,
) -> list[str]:
    """
    Render a polyline that replaces one command

    The first segment keeps the command's N word, modal G codes, F/S/T/M words
    and comment; the following segments carry only the motion code and axes.
    """
    lines = []
    previous = start
    for index, point in enumerate(points):
        if index == 0:
            lines.append(parser.render_motion(command, previous, point, code=code))
        else:
            lines.append(parser.render(code, previous, point, command.is_absolute))
        previous = point
    return lines
