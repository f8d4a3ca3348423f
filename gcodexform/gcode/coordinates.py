"""
Positions and unit conversion for GCODE

Positions always carry the unit system they are expressed in. Two positions
are only combined after both are converted to the same units; linear axes
(X, Y, Z) are scaled by the conversion, rotary axes (A, B, C) are degrees and
are left untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum

from gcodexform.utils.errors import UnitError

AXES: tuple[str, ...] = ("X", "Y", "Z", "A", "B", "C")
LINEAR_AXES: frozenset[str] = frozenset({"X", "Y", "Z"})

MM_PER_INCH: float = 25.4


class Units(str, Enum):
    """Unit systems, valued by the G-code word that selects them"""

    MM = "G21"
    INCH = "G20"

    @classmethod
    def from_name(cls, name: Units | str) -> Units:
        """
        Resolve a unit system from a G word or a common name

        Args:
            name: 'G21', 'mm', 'metric', 'G20', 'inch', 'in', ...

        Returns:
            The matching Units member

        Raises:
            UnitError: If the name is not a known unit system
        """
        if isinstance(name, Units):
            return name
        key = str(name).strip().lower()
        if key in ("g21", "mm", "millimeter", "millimeters", "millimetre", "metric"):
            return cls.MM
        if key in ("g20", "in", "inch", "inches", "imperial"):
            return cls.INCH
        raise UnitError(f"Unknown unit system: {name!r}")


_MM_PER_UNIT = {
    Units.MM: 1.0,
    Units.INCH: MM_PER_INCH,
}


def conversion_factor(from_units: Units, to_units: Units) -> float:
    """
    Multiplier that converts a linear value from one unit system to another

    Raises:
        UnitError: If either unit system has no defined conversion
    """
    try:
        return _MM_PER_UNIT[from_units] / _MM_PER_UNIT[to_units]
    except KeyError as e:
        raise UnitError(f"No conversion defined from {from_units!r} to {to_units!r}") from e


def convert(value: float, from_units: Units, to_units: Units) -> float:
    """Convert a linear value between unit systems"""
    if from_units is to_units:
        return value
    return value * conversion_factor(from_units, to_units)


@dataclass(frozen=True)
class Position:
    """A machine position with an explicit unit system"""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    a: float = 0.0
    b: float = 0.0
    c: float = 0.0
    units: Units = Units.MM

    def get(self, axis: str) -> float:
        """Get value for a specific axis."""
        return getattr(self, axis.lower())

    def with_axes(self, values: dict[str, float]) -> Position:
        """Copy of this position with some axes replaced (values in this position's units)"""
        return replace(self, **{axis.lower(): float(v) for axis, v in values.items()})

    def to(self, units: Units) -> Position:
        """This position expressed in another unit system"""
        if units is self.units:
            return self
        factor = conversion_factor(self.units, units)
        return replace(
            self,
            x=self.x * factor,
            y=self.y * factor,
            z=self.z * factor,
            units=units,
        )

    def as_dict(self) -> dict[str, float]:
        return {axis: self.get(axis) for axis in AXES}

    def __add__(self, other: Position) -> Position:
        other = other.to(self.units)
        return self.with_axes({axis: self.get(axis) + other.get(axis) for axis in AXES})

    def __sub__(self, other: Position) -> Position:
        other = other.to(self.units)
        return self.with_axes({axis: self.get(axis) - other.get(axis) for axis in AXES})

    def is_close(self, other: Position, tol: float = 1e-9) -> bool:
        """Axis-wise comparison after conversion to this position's units"""
        other = other.to(self.units)
        return all(abs(self.get(axis) - other.get(axis)) <= tol for axis in AXES)


@dataclass(frozen=True)
class PartialPosition:
    """A position where only some axes are specified (processor configuration)"""

    x: float | None = None
    y: float | None = None
    z: float | None = None
    a: float | None = None
    b: float | None = None
    c: float | None = None
    units: Units = Units.MM

    @classmethod
    def from_position(cls, position: Position) -> PartialPosition:
        return cls(**{f.name: getattr(position, f.name) for f in fields(position)})

    def get(self, axis: str, default: float | None = None) -> float | None:
        value = getattr(self, axis.lower())
        return default if value is None else value

    def to(self, units: Units) -> PartialPosition:
        if units is self.units:
            return self
        factor = conversion_factor(self.units, units)
        scaled = {
            axis.lower(): self.get(axis) * factor
            for axis in LINEAR_AXES
            if self.get(axis) is not None
        }
        return replace(self, units=units, **scaled)

    def axes(self) -> list[str]:
        """Axes that carry a value"""
        return [axis for axis in AXES if self.get(axis) is not None]
