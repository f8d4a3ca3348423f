"""
Central configuration for gcodexform tunables and shared constants.
"""

import logging
import os

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")
# Add Logger.trace if missing
if not hasattr(logging.Logger, "trace"):

    def _trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)

    logging.Logger.trace = _trace  # type: ignore[attr-defined]
    logging.TRACE = TRACE  # type: ignore[attr-defined]

TRACE_ENABLED = str(os.getenv("GCODEXFORM_TRACE", "0")).lower() in ("1", "true", "yes", "on")

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float, minimum: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number, using {default}")
        return default
    if minimum is not None and value < minimum:
        logger.warning(f"Ignoring {name}={raw!r}: below {minimum}, using {default}")
        return default
    return value


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer, using {default}")
        return default
    return max(minimum, value)


# Arc expansion (mm). Chord error is the max distance between arc and segment.
ARC_TOLERANCE_MM: float = _env_float("GCODEXFORM_ARC_TOLERANCE_MM", 0.01, minimum=1e-6)
MAX_SEGMENT_ANGLE_DEG: float = _env_float("GCODEXFORM_MAX_SEGMENT_ANGLE_DEG", 5.0, minimum=0.01)

# Start/end radius mismatch accepted on IJK arcs (mm), or 0.1% of the radius if larger
ARC_RADIUS_TOLERANCE_MM: float = _env_float("GCODEXFORM_ARC_RADIUS_TOLERANCE_MM", 0.01, minimum=0.0)
ARC_RADIUS_TOLERANCE_REL: float = 1e-3

# Output formatting
DECIMAL_PRECISION: int = _env_int("GCODEXFORM_DECIMAL_PRECISION", 4, minimum=0)

# Machine defaults used to seed the modal state at stream start
DEFAULT_UNITS: str = os.getenv("GCODEXFORM_DEFAULT_UNITS", "G21").strip().upper()
DEFAULT_POSITIONING_MODE: str = "G90"
DEFAULT_ARC_DISTANCE_MODE: str = "G91.1"
DEFAULT_PLANE: str = "G17"
DEFAULT_MOTION_MODE: str = "G0"
DEFAULT_FEED_MODE: str = "G94"

# Pipeline
ON_ERROR_DEFAULT: str = os.getenv("GCODEXFORM_ON_ERROR", "abort").strip().lower()
LINE_SPLIT_MAX_LENGTH_MM: float = _env_float("GCODEXFORM_LINE_SPLIT_MAX_MM", 10.0, minimum=1e-6)

LOG_LEVEL_DEFAULT: str = "WARNING"
