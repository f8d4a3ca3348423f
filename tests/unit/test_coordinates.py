import pytest

from gcodexform.gcode.coordinates import PartialPosition, Position, Units, conversion_factor, convert
from gcodexform.utils.errors import UnitError

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "name, expected",
    [
        ("G21", Units.MM),
        ("mm", Units.MM),
        ("metric", Units.MM),
        ("G20", Units.INCH),
        ("inch", Units.INCH),
        (Units.INCH, Units.INCH),
    ],
)
def test_units_from_name(name, expected):
    assert Units.from_name(name) is expected


def test_units_from_unknown_name():
    with pytest.raises(UnitError):
        Units.from_name("cubit")


def test_conversion():
    assert conversion_factor(Units.INCH, Units.MM) == 25.4
    assert convert(2.0, Units.INCH, Units.MM) == pytest.approx(50.8)
    assert convert(50.8, Units.MM, Units.INCH) == pytest.approx(2.0)
    assert convert(3.0, Units.MM, Units.MM) == 3.0


def test_conversion_without_factor():
    with pytest.raises(UnitError):
        conversion_factor("furlong", Units.MM)


def test_position_to_scales_linear_axes_only():
    pos = Position(1, 2, 3, 90, 45, 10, units=Units.INCH).to(Units.MM)
    assert pos.units is Units.MM
    assert (pos.x, pos.y, pos.z) == pytest.approx((25.4, 50.8, 76.2))
    assert (pos.a, pos.b, pos.c) == (90, 45, 10)


def test_position_arithmetic_converts_operand():
    total = Position(10, 0, 0) + Position(1, 1, 0, units=Units.INCH)
    assert total.units is Units.MM
    assert total.x == pytest.approx(35.4)
    assert total.y == pytest.approx(25.4)
    diff = Position(10, 0, 0) - Position(4, 0, 0)
    assert diff.x == 6


def test_position_accessors():
    pos = Position(1, 2, 3)
    assert pos.get("Y") == 2
    assert pos.with_axes({"Z": 7}) == Position(1, 2, 7)
    assert pos.as_dict() == {"X": 1, "Y": 2, "Z": 3, "A": 0, "B": 0, "C": 0}
    assert pos.is_close(Position(1, 2, 3 + 1e-12))
    assert not pos.is_close(Position(1, 2, 3.1))


def test_partial_position():
    center = PartialPosition(x=1, units=Units.INCH)
    assert center.axes() == ["X"]
    assert center.get("Y") is None
    assert center.get("Y", 0.0) == 0.0
    in_mm = center.to(Units.MM)
    assert in_mm.x == pytest.approx(25.4)
    assert in_mm.y is None
    assert PartialPosition.from_position(Position(1, 2, 3)).get("Z") == 3
