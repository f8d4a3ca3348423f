"""
Utility functions for GCODE processing

Pure numeric helpers for arcs, line splitting and number formatting. They
take explicit numbers only (no state, no text) so they can be tested on
their own.
"""

import math

import numpy as np

from gcodexform import config as cfg
from gcodexform.utils.errors import GeometryError

# Plane -> (first in-plane axis, second in-plane axis, out-of-plane axis).
# G18 is ordered Z, X so that G2/G3 keep their meaning viewed from +Y.
PLANE_AXES: dict[str, tuple[str, str, str]] = {
    "G17": ("X", "Y", "Z"),
    "G18": ("Z", "X", "Y"),
    "G19": ("Y", "Z", "X"),
}

# Arc centre word for each axis
OFFSET_WORDS: dict[str, str] = {"X": "I", "Y": "J", "Z": "K"}

TINY = 1e-12

# Fewest chords for a full turn; fewer would close on the start point
MIN_FULL_TURN_SEGMENTS = 3


def format_gcode_number(value: float, decimals: int = cfg.DECIMAL_PRECISION) -> str:
    """
    Format number for GCODE output

    Args:
        value: Numeric value
        decimals: Number of decimal places

    Returns:
        Formatted string without trailing zeros (and never "-0")
    """
    formatted = f"{value:.{decimals}f}"
    # Remove trailing zeros and decimal point if not needed
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    if formatted in ("-0", ""):
        formatted = "0"
    return formatted


def calculate_distance(start, end) -> float:
    """Euclidean distance between two coordinate sequences"""
    return float(np.linalg.norm(np.asarray(end, dtype=float) - np.asarray(start, dtype=float)))


def ijk_to_center(start: tuple[float, float], offsets: tuple[float, float]) -> tuple[float, float]:
    """
    Convert incremental IJK offsets to an arc centre in plane coordinates

    Args:
        start: In-plane start point (u, v)
        offsets: In-plane offsets from the start point

    Returns:
        Centre point (u, v)
    """
    return start[0] + offsets[0], start[1] + offsets[1]


def radius_to_center(
    start: tuple[float, float],
    end: tuple[float, float],
    radius: float,
    clockwise: bool,
    tolerance: float = 0.0,
) -> tuple[float, float]:
    """
    Calculate arc centre from an R word

    Args:
        start: In-plane start point
        end: In-plane end point
        radius: Arc radius (positive for <= 180 degrees, negative for > 180 degrees)
        clockwise: True for G2, False for G3
        tolerance: Allowed excess of the chord over the diameter (semicircles)

    Returns:
        Centre point (u, v)

    Raises:
        GeometryError: Zero radius, coincident endpoints or radius too small
    """
    if abs(radius) < TINY:
        raise GeometryError("Arc radius is zero")

    x1, y1 = start
    x2, y2 = end
    dx = x2 - x1
    dy = y2 - y1
    d = math.hypot(dx, dy)

    if d < TINY:
        raise GeometryError("R-format arc with coincident start and end points has no unique centre")

    half = d / 2
    if half > abs(radius):
        if half - abs(radius) > tolerance:
            raise GeometryError(f"Arc radius {radius} too small for distance {d:.6g}")
        half = abs(radius)

    h = math.sqrt(max(0.0, radius**2 - half**2))

    # Perpendicular pointing left of the start -> end direction
    px = -dy / d
    py = dx / d

    # Short clockwise arcs and long counter-clockwise arcs have their centre on the right
    if clockwise == (radius > 0):
        h = -h

    mx = (x1 + x2) / 2
    my = (y1 + y2) / 2
    return mx + h * px, my + h * py


def arc_sweep(
    start: tuple[float, float],
    end: tuple[float, float],
    center: tuple[float, float],
    clockwise: bool,
    turns: int = 1,
) -> tuple[float, float]:
    """
    Start angle and signed swept angle of an arc

    Coincident start and end points describe a full turn. Each extra turn
    (P word) adds a further 2*pi.

    Returns:
        (start_angle, sweep) in radians, sweep negative for clockwise arcs
    """
    start_angle = math.atan2(start[1] - center[1], start[0] - center[0])
    end_angle = math.atan2(end[1] - center[1], end[0] - center[0])

    if clockwise:
        sweep = (start_angle - end_angle) % (2 * math.pi)
    else:
        sweep = (end_angle - start_angle) % (2 * math.pi)

    if sweep < 1e-9:
        sweep = 2 * math.pi

    sweep += 2 * math.pi * max(0, turns - 1)
    return start_angle, -sweep if clockwise else sweep


def arc_segment_count(
    radius: float,
    sweep: float,
    tolerance: float,
    max_angle: float | None = None,
) -> int:
    """
    Number of chords needed so each stays within the chord error tolerance

    A chord spanning angle t on radius r deviates from the arc by
    r * (1 - cos(t / 2)), so t <= 2 * acos(1 - tolerance / r).

    Args:
        radius: Arc radius
        sweep: Swept angle in radians (sign ignored)
        tolerance: Maximum chord deviation, same units as radius
        max_angle: Optional cap on the angle of one segment, radians

    Returns:
        Segment count (>= 1, and at least MIN_FULL_TURN_SEGMENTS for a full turn)
    """
    if tolerance <= 0:
        raise ValueError("Chord tolerance must be positive")

    ratio = 1.0 - tolerance / radius
    step = 2 * math.acos(max(-1.0, min(1.0, ratio)))
    if max_angle is not None and max_angle > 0:
        step = min(step, max_angle)
    minimum = MIN_FULL_TURN_SEGMENTS if abs(sweep) >= 2 * math.pi - 1e-9 else 1
    if step <= 0:
        return minimum
    return max(minimum, math.ceil(abs(sweep) / step))


def rounding_error(decimals: int, axes: int = 3) -> float:
    """Largest distance a point moves when each of its axes is rounded to decimals"""
    return math.sqrt(axes) * 0.5 * 10.0**-decimals


def interpolate_arc(
    start,
    end,
    center: tuple[float, float],
    clockwise: bool,
    tolerance: float,
    *,
    turns: int = 1,
    max_angle: float | None = None,
    radius_tolerance: float = 0.0,
) -> np.ndarray:
    """
    Points along an arc, helix or spiral, ending exactly at the end point

    The first two components of start/end are the in-plane coordinates; any
    further components (out-of-plane axis, rotary axes) are interpolated
    linearly in angle. The radius is interpolated linearly from the start
    radius to the end radius.

    Args:
        start: Start point, shape (k,), k >= 2
        end: End point, shape (k,)
        center: In-plane centre
        clockwise: True for G2
        tolerance: Chord error tolerance
        turns: Number of turns for full circles (P word)
        max_angle: Optional per-segment angle cap, radians
        radius_tolerance: Allowed start/end radius mismatch (absolute)

    Returns:
        Array of shape (n, k) with the n segment end points

    Raises:
        GeometryError: Zero radius or inconsistent start/end radii
    """
    start = np.asarray(start, dtype=float)
    end = np.asarray(end, dtype=float)
    cx, cy = center

    r_start = math.hypot(start[0] - cx, start[1] - cy)
    r_end = math.hypot(end[0] - cx, end[1] - cy)
    if r_start < TINY or r_end < TINY:
        raise GeometryError("Arc radius is zero")

    allowed = max(radius_tolerance, cfg.ARC_RADIUS_TOLERANCE_REL * r_start)
    if abs(r_start - r_end) > allowed:
        raise GeometryError(
            f"Arc start radius {r_start:.6g} and end radius {r_end:.6g} differ by more than {allowed:.6g}"
        )

    start_angle, sweep = arc_sweep(
        (start[0], start[1]), (end[0], end[1]), (cx, cy), clockwise, turns
    )
    count = arc_segment_count(max(r_start, r_end), sweep, tolerance, max_angle)

    t = np.linspace(0.0, 1.0, count + 1)[1:]
    angles = start_angle + sweep * t
    radii = r_start + (r_end - r_start) * t

    points = np.empty((count, start.shape[0]))
    points[:, 0] = cx + radii * np.cos(angles)
    points[:, 1] = cy + radii * np.sin(angles)
    points[:, 2:] = start[2:] + np.outer(t, end[2:] - start[2:])

    # No accumulated drift: the last point is the declared end point
    points[-1] = end
    return points


def split_into_segments(start, end, max_segment_length: float) -> np.ndarray:
    """
    Split a straight move into equal pieces no longer than max_segment_length

    Args:
        start: Starting point, shape (k,)
        end: Ending point, shape (k,)
        max_segment_length: Maximum piece length (linear axes only, first 3 components)

    Returns:
        Array of intermediate and final points, last row equal to end
    """
    start = np.asarray(start, dtype=float)
    end = np.asarray(end, dtype=float)
    distance = calculate_distance(start[:3], end[:3])

    if distance <= max_segment_length:
        return end.reshape(1, -1)

    num_segments = int(math.ceil(distance / max_segment_length))
    t = np.linspace(0.0, 1.0, num_segments + 1)[1:]
    points = start + np.outer(t, end - start)
    points[-1] = end
    return points


def quantize(points: np.ndarray, decimals: int = cfg.DECIMAL_PRECISION, origin=None) -> np.ndarray:
    """
    Round intermediate points to the output precision, keeping the last row exact

    Rounding is done relative to origin (the move's start point for
    incremental output), so the deltas between consecutive points format
    without loss and add up to the declared total.
    """
    points = np.asarray(points, dtype=float)
    base = np.zeros(points.shape[1]) if origin is None else np.asarray(origin, dtype=float)
    rounded = base + np.round(points - base, decimals)
    rounded[-1] = points[-1]
    return rounded
