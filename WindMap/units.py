"""Unit conversions and nautical lookups - pure functions for testability."""
import math
from dataclasses import dataclass
from typing import Optional


MS_TO_KNOTS = 1.94384
MPH_TO_KNOTS = 0.868976
METERS_TO_FEET = 3.28084

COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


@dataclass(frozen=True)
class BeaufortLevel:
    """One step of the Beaufort wind force scale."""
    scale: int
    description: str


# (upper bound in knots, exclusive) -> level; anything above the last bound is 12
BEAUFORT_TABLE = [
    (1, BeaufortLevel(0, "Calm")),
    (4, BeaufortLevel(1, "Light air")),
    (7, BeaufortLevel(2, "Light breeze")),
    (11, BeaufortLevel(3, "Gentle breeze")),
    (17, BeaufortLevel(4, "Moderate breeze")),
    (22, BeaufortLevel(5, "Fresh breeze")),
    (28, BeaufortLevel(6, "Strong breeze")),
    (34, BeaufortLevel(7, "Near gale")),
    (41, BeaufortLevel(8, "Gale")),
    (48, BeaufortLevel(9, "Strong gale")),
    (56, BeaufortLevel(10, "Storm")),
    (64, BeaufortLevel(11, "Violent storm")),
]
HURRICANE = BeaufortLevel(12, "Hurricane")


def ms_to_knots(value: Optional[float]) -> Optional[float]:
    """Convert metres per second to knots."""
    return None if value is None else value * MS_TO_KNOTS


def mph_to_knots(value: Optional[float]) -> Optional[float]:
    """Convert statute miles per hour to knots."""
    return None if value is None else value * MPH_TO_KNOTS


def meters_to_feet(value: Optional[float]) -> Optional[float]:
    return None if value is None else value * METERS_TO_FEET


def celsius_to_fahrenheit(value: Optional[float]) -> Optional[float]:
    return None if value is None else value * 9 / 5 + 32


def format_one_decimal(value: Optional[float], missing: str = "N/A") -> str:
    """
    Format a number with one decimal place.

    Args:
        value: Number to format, or None when the reading is absent
        missing: Text returned for absent values

    Returns:
        e.g. "19.4", or `missing`
    """
    if value is None:
        return missing
    return f"{value:.1f}"


def compass_point(degrees: Optional[float]) -> Optional[str]:
    """
    Get the nearest of the 16 compass points for a heading.

    Halves round up, so 11.25° is NNE and 22.5° is NNE.

    Args:
        degrees: Heading in degrees (any real value, wrapped to 0-360)

    Returns:
        Compass point name (e.g. "N", "SSW"), or None if degrees is None
    """
    if degrees is None:
        return None
    # floor(x + 0.5) rounds halves up; round() would round them to even
    index = math.floor(degrees / 22.5 + 0.5) % 16
    return COMPASS_POINTS[index]


def beaufort(knots: float) -> BeaufortLevel:
    """
    Classify a sustained wind speed on the Beaufort scale.

    Args:
        knots: Wind speed in knots

    Returns:
        BeaufortLevel with scale 0-12 and its description
    """
    for upper, level in BEAUFORT_TABLE:
        if knots < upper:
            return level
    return HURRICANE
