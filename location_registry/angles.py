"""
Latitude / longitude text parsing.

Accepted notations, first match wins:
  - plain decimal degrees: "43.6", "-121.558807", "+2.35"
  - degrees/minutes/seconds: +121°33'38.28", -33°52', 48°
Anything else is reported as a failure, never as a partial value.
"""

from __future__ import annotations

import math
import re

_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

# GPS style coordinate like +121°33'38.28"
_DMS_RE = re.compile(r"([+-]?)([\d.]+)°(?:([\d.]+)')?(?:([\d.]+)\")?")


def parse_angle(text: str) -> tuple[float, bool]:
    """
    Parse an angle in degrees.
    Returns (value, ok). On failure value is 0.0 and ok is False.
    """
    s = text.strip()

    if _DECIMAL_RE.fullmatch(s):
        return float(s), True

    match = _DMS_RE.fullmatch(s)
    if not match:
        return 0.0, False

    sign, deg_text, min_text, sec_text = match.groups()
    try:
        degrees = float(deg_text)
        minutes = float(min_text) if min_text else 0.0
        seconds = float(sec_text) if sec_text else 0.0
    except ValueError:
        # "[\d.]+" also admits things like "1.2.3"
        return 0.0, False

    value = degrees + minutes / 60 + seconds / 3600
    return (-value if sign == "-" else value), True


def format_dms(degrees: float) -> str:
    """Render decimal degrees as a signed D°M'S.SS" string parse_angle accepts."""
    sign = "-" if math.copysign(1.0, degrees) < 0 else "+"
    a = abs(degrees)
    d = int(a)
    m = int((a - d) * 60)
    s = max((a - d - m / 60) * 3600, 0.0)
    return f"{sign}{d}°{m}'{s:.2f}\""
