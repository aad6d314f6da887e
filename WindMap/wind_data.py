"""Wind domain model - pure data structures independent of any API."""
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from units import BeaufortLevel, beaufort, compass_point


@dataclass(frozen=True)
class ForecastReading:
    """Wind at the marina, already in knots."""
    speed_knots: float
    direction_deg: int  # 0-359, direction the wind blows from
    gust_knots: Optional[float] = None

    @property
    def compass(self) -> str:
        return compass_point(self.direction_deg)

    @property
    def beaufort(self) -> BeaufortLevel:
        return beaufort(self.speed_knots)


@dataclass(frozen=True)
class BuoyReading:
    """Offshore buoy observation in nautical/imperial units. Any field may be absent."""
    wind_speed_knots: Optional[float] = None
    wind_gust_knots: Optional[float] = None
    wave_height_ft: Optional[float] = None
    pressure_hpa: Optional[float] = None
    air_temp_f: Optional[float] = None
    water_temp_f: Optional[float] = None
    wind_direction_deg: Optional[float] = None
    observed_at: Optional[str] = None  # "YY-MM-DD hh:mm", UTC

    @property
    def compass(self) -> Optional[str]:
        return compass_point(self.wind_direction_deg)


@dataclass(frozen=True)
class MapViewState:
    """Camera position of the map."""
    center: Tuple[float, float]
    zoom: int

    def to_dict(self) -> dict:
        return {"center": [self.center[0], self.center[1]], "zoom": self.zoom}

    @classmethod
    def from_dict(cls, data: Any) -> "MapViewState":
        """
        Build a view state from its stored form.

        Args:
            data: Dict shaped like {"center": [lat, lng], "zoom": int}

        Returns:
            MapViewState

        Raises:
            ValueError: If the data is not a valid view state
        """
        if not isinstance(data, dict):
            raise ValueError("Map position must be an object")
        center = data.get("center")
        zoom = data.get("zoom")
        if not isinstance(center, (list, tuple)) or len(center) != 2:
            raise ValueError("Map position 'center' must be [lat, lng]")
        if isinstance(zoom, bool) or not isinstance(zoom, (int, float)):
            raise ValueError("Map position 'zoom' must be a number")
        try:
            lat, lng = float(center[0]), float(center[1])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid map center: {exc}") from exc
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValueError(f"Map center out of range: {lat}, {lng}")
        return cls(center=(lat, lng), zoom=int(zoom))


# PipelineResult statuses
OK = "ok"
STALE = "stale"
EMPTY = "empty"


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of one pipeline refresh.

    status is OK when value came from a fresh cache or a successful fetch,
    STALE when the refetch failed and value is the last cached reading,
    EMPTY when there is nothing to show yet.
    """
    status: str
    value: Any = None
    fetched_at_millis: Optional[int] = None

    @classmethod
    def empty(cls) -> "PipelineResult":
        return cls(status=EMPTY)
