"""Utility helpers for the nearby matcher."""

from __future__ import annotations

import math
import re
import time
from typing import Optional

FEET_PER_METER = 3.28084
EARTH_RADIUS_M = 6371000.0

_WHITESPACE = re.compile(r"\s+")


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # rounding can push a a hair past 1.0 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def meters_to_feet(meters: float) -> float:
    return meters * FEET_PER_METER


def feet_to_meters(feet: float) -> float:
    return feet / FEET_PER_METER


def normalize_identifier(value: Optional[str]) -> str:
    """Lowercase and drop all whitespace; empty string for missing values."""
    if not value:
        return ""
    return _WHITESPACE.sub("", str(value)).lower()


def short_name(full: Optional[str]) -> str:
    """First name plus last-name initial, e.g. "Ana Maria Lopez" -> "Ana M."."""
    text = (full or "").strip()
    if not text:
        return "Unnamed"
    parts = text.split()
    if len(parts) == 1:
        return text
    return f"{parts[0]} {parts[1][0]}."


def now_ms() -> int:
    return int(time.time() * 1000)
