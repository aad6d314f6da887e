"""Map layout for the wind display - pure functions for testability."""
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from units import format_one_decimal
from wind_data import EMPTY, BuoyReading, ForecastReading, MapViewState, PipelineResult


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    lat: float
    lng: float


# Oceanside Marina, 33°12'22"N 117°23'26"W (boat location)
OCEANSIDE_MARINA = Station(id="marina", name="Oceanside Marina", lat=33.2061111, lng=-117.3905556)
# NOAA Buoy 46224 - Oceanside Offshore
NOAA_BUOY_46224 = Station(id="46224", name="Oceanside Offshore", lat=33.178, lng=-117.472)

DEFAULT_ZOOM = 14
ARROW_COLOR = "#2196F3"
# Arrow gets one dot above each threshold (knots)
ARROW_DOT_THRESHOLDS = (10.0, 20.0)

TILE_LAYERS = [
    dict(
        name="Standard Map",
        url="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        attribution='&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
        base=True,
        checked=True,
    ),
    dict(
        name="Satellite View",
        url="https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        attribution='&copy; <a href="https://www.esri.com/">Esri</a>',
        base=True,
        checked=False,
    ),
    dict(
        name="NOAA Nautical Charts",
        url="https://seamlessrnc.nauticalcharts.noaa.gov/arcgis/rest/services/RNC/NOAA_RNC/MapServer/tile/{z}/{y}/{x}",
        attribution='&copy; <a href="https://www.nauticalcharts.noaa.gov/">NOAA</a>',
        base=True,
        checked=False,
        min_zoom=3,
        max_zoom=18,
    ),
    dict(
        name="Seamarks (Buoys & Navigation)",
        url="https://tiles.openseamap.org/seamark/{z}/{x}/{y}.png",
        attribution='&copy; <a href="http://www.openseamap.org">OpenSeaMap</a> contributors',
        base=False,
        checked=True,
    ),
    dict(
        name="Depth Contours",
        url="https://tiles.openseamap.org/water/{z}/{x}/{y}.png",
        attribution="&copy; OpenSeaMap",
        base=False,
        checked=True,
        opacity=0.6,
    ),
]


class MapOp:
    """Represents one thing to put on the map (tile layer, marker, arrow)."""
    def __init__(self, op_type: str, **kwargs):
        self.op_type = op_type
        self.kwargs = kwargs

    def to_dict(self) -> dict:
        return {"type": self.op_type, **self.kwargs}


@dataclass
class MapView:
    """Everything the page needs to draw, in display units."""
    title: str
    view: MapViewState
    header: List[Tuple[str, str]] = field(default_factory=list)
    updated_text: Optional[str] = None
    loading: bool = False
    ops: List[MapOp] = field(default_factory=list)

    def ops_of_type(self, op_type: str) -> List[MapOp]:
        return [op for op in self.ops if op.op_type == op_type]


def arrow_dot_count(speed_knots: float) -> int:
    return sum(1 for threshold in ARROW_DOT_THRESHOLDS if speed_knots > threshold)


def wind_arrow_svg(direction_deg: float, speed_knots: float, color: str = ARROW_COLOR) -> str:
    """
    Build the SVG glyph for a wind arrow.

    The arrow points along `direction_deg` and gains a dot for each
    speed threshold exceeded.

    Args:
        direction_deg: Rotation in degrees
        speed_knots: Wind speed in knots
        color: Stroke/fill color

    Returns:
        SVG markup, 60x60 with the arrow centred
    """
    dots = "".join(
        f'<circle cx="0" cy="{5 + 5 * i}" r="2" fill="{color}" />'
        for i in range(arrow_dot_count(speed_knots))
    )
    return (
        '<svg width="60" height="60" viewBox="0 0 60 60" xmlns="http://www.w3.org/2000/svg">'
        '<g transform="translate(30, 30)">'
        f'<g transform="rotate({direction_deg:g})">'
        f'<line x1="0" y1="-20" x2="0" y2="15" stroke="{color}" stroke-width="3" />'
        f'<polygon points="0,-25 -6,-15 6,-15" fill="{color}" />'
        f"{dots}"
        "</g></g></svg>"
    )


def arrow_op(station: Station, direction_deg: float, speed_knots: float) -> MapOp:
    return MapOp(
        "arrow",
        lat=station.lat,
        lng=station.lng,
        svg=wind_arrow_svg(direction_deg, speed_knots),
        tooltip=f"Wind: {speed_knots:.1f} kts at {direction_deg:g}°",
    )


def format_updated_time(fetched_at_millis: int) -> str:
    return time.strftime("%H:%M:%S", time.localtime(fetched_at_millis / 1000.0))


def forecast_header(reading: ForecastReading) -> List[Tuple[str, str]]:
    """Header stats for the marina forecast."""
    level = reading.beaufort
    return [
        ("Speed", f"{format_one_decimal(reading.speed_knots)} kts"),
        ("Direction", f"{reading.compass} ({reading.direction_deg}°)"),
        ("Gusts", f"{format_one_decimal(reading.gust_knots)} kts"),
        ("Beaufort", f"{level.scale} - {level.description}"),
    ]


def marina_popup(reading: Optional[ForecastReading]) -> dict:
    lines = []
    if reading is not None:
        lines.append(("Wind", f"{format_one_decimal(reading.speed_knots)} kts {reading.compass}"))
        lines.append(("Gusts", f"{format_one_decimal(reading.gust_knots)} kts"))
    return {"title": f"{OCEANSIDE_MARINA.name} (Your Boat)", "lines": lines}


def buoy_popup(reading: BuoyReading) -> dict:
    """
    Popup for the buoy marker. Only readings that are present get a line.
    """
    lines = []
    if reading.wind_speed_knots is not None:
        wind = f"{format_one_decimal(reading.wind_speed_knots)} kts"
        if reading.wind_direction_deg is not None:
            wind += f" @ {reading.compass} ({reading.wind_direction_deg:g}°)"
        lines.append(("Wind", wind))
        if reading.wind_gust_knots is not None:
            lines.append(("Gusts", f"{format_one_decimal(reading.wind_gust_knots)} kts"))
    if reading.wave_height_ft is not None:
        lines.append(("Wave Height", f"{format_one_decimal(reading.wave_height_ft)} ft"))
    if reading.water_temp_f is not None:
        lines.append(("Water Temp", f"{format_one_decimal(reading.water_temp_f)}°F"))
    if reading.air_temp_f is not None:
        lines.append(("Air Temp", f"{format_one_decimal(reading.air_temp_f)}°F"))
    if reading.pressure_hpa is not None:
        lines.append(("Pressure", f"{reading.pressure_hpa:g} mb"))
    footer = f"Updated: {reading.observed_at} UTC" if reading.observed_at else None
    return {
        "title": f"NOAA Buoy {NOAA_BUOY_46224.id} - {NOAA_BUOY_46224.name}",
        "subtitle": "Real-time offshore conditions",
        "lines": lines,
        "footer": footer,
    }


def calculate_map(
    forecast: PipelineResult,
    buoy: PipelineResult,
    view: Optional[MapViewState] = None
) -> MapView:
    """
    Calculate everything to draw for the current pipeline results.

    This is a pure function that returns map operations,
    making it easy to test without a browser.

    Args:
        forecast: Latest forecast pipeline result (value is a ForecastReading)
        buoy: Latest buoy pipeline result (value is a BuoyReading)
        view: Initial camera; defaults to the marina at zoom 14

    Returns:
        MapView with header text and ordered MapOps
    """
    view = view or MapViewState(center=(OCEANSIDE_MARINA.lat, OCEANSIDE_MARINA.lng), zoom=DEFAULT_ZOOM)
    result = MapView(title=f"{OCEANSIDE_MARINA.name} - Wind Map", view=view)

    for layer in TILE_LAYERS:
        result.ops.append(MapOp("tile_layer", **layer))

    wind: Optional[ForecastReading] = forecast.value if forecast.status != EMPTY else None
    if wind is not None:
        result.header = forecast_header(wind)
        if forecast.fetched_at_millis is not None:
            result.updated_text = (
                f"Updated: {format_updated_time(forecast.fetched_at_millis)} (OpenWeatherMap forecast)"
            )
    else:
        result.loading = True

    result.ops.append(MapOp(
        "marker",
        lat=OCEANSIDE_MARINA.lat,
        lng=OCEANSIDE_MARINA.lng,
        popup=marina_popup(wind),
        z_index_offset=0,
    ))

    reading: Optional[BuoyReading] = buoy.value if buoy.status != EMPTY else None
    if reading is not None:
        result.ops.append(MapOp(
            "marker",
            lat=NOAA_BUOY_46224.lat,
            lng=NOAA_BUOY_46224.lng,
            popup=buoy_popup(reading),
            z_index_offset=1000,
        ))
        if reading.wind_speed_knots is not None and reading.wind_direction_deg is not None:
            result.ops.append(arrow_op(NOAA_BUOY_46224, reading.wind_direction_deg, reading.wind_speed_knots))

    if wind is not None:
        result.ops.append(arrow_op(OCEANSIDE_MARINA, wind.direction_deg, wind.speed_knots))

    return result
