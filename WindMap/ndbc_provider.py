"""
NOAA/NDBC real-time buoy provider.

Data Source: NOAA NDBC (National Data Buoy Center)
- Feed: https://www.ndbc.noaa.gov/data/realtime2/<station>.txt
- Default station: 46224 (Oceanside Offshore, CA)
- License: Public domain (U.S. Government)

The realtime2 text file has two header lines followed by observations,
newest first:

    #YY  MM DD hh mm WDIR WSPD GST  WVHT   DPD   APD MWD   PRES  ATMP  WTMP  DEWP  VIS PTDY  TIDE
    #yr  mo dy hr mn degT m/s  m/s     m   sec   sec degT   hPa  degC  degC  degC  nmi  hPa    ft
    2025 06 01 17 30 270  5.0  7.0   1.2    12   7.8 265 1015.2  18.3  19.1  14.0   MM   MM    MM

Missing values are written as "MM".
"""
import logging
import math
import requests
from typing import Any, Dict, List, Optional
from urllib.parse import quote
from feed_provider import FeedProviderBase, FeedProviderError
from units import celsius_to_fahrenheit, meters_to_feet, ms_to_knots
from wind_data import BuoyReading


NDBC_URL = "https://www.ndbc.noaa.gov/data/realtime2/{station}.txt"
DEFAULT_PROXY = "https://corsproxy.io/?{url}"

# Raw field name -> column index in an NDBC standard meteorological row
COLUMNS = {
    "wind_direction": 5,
    "wind_speed": 6,
    "wind_gust": 7,
    "wave_height": 8,
    "pressure": 12,
    "air_temp": 13,
    "water_temp": 14,
}
HEADER_LINES = 2


class NdbcBuoyProvider(FeedProviderBase):
    """Fetches the newest observation row for one NDBC station."""

    def __init__(self, station_id: str = "46224", proxy_template: str = DEFAULT_PROXY, timeout: int = 10):
        """
        Initialize NDBC provider.

        Args:
            station_id: NDBC station identifier
            proxy_template: URL with a "{url}" placeholder for the percent-encoded
                feed URL; empty string fetches the feed directly
            timeout: HTTP request timeout in seconds
        """
        if proxy_template and "{url}" not in proxy_template:
            raise ValueError(f"Proxy template must contain '{{url}}': {proxy_template}")
        self.station_id = station_id
        self.proxy_template = proxy_template
        self.timeout = timeout

    @property
    def feed_url(self) -> str:
        return NDBC_URL.format(station=self.station_id)

    @property
    def request_url(self) -> str:
        if not self.proxy_template:
            return self.feed_url
        return self.proxy_template.format(url=quote(self.feed_url, safe=""))

    def fetch(self) -> Optional[Dict[str, Any]]:
        """
        Fetch and parse the latest observation.

        Returns:
            Raw metric record (see parse_observation), or None if the feed has no rows

        Raises:
            FeedProviderError: On network failure or a non-2xx response
        """
        url = self.request_url
        try:
            logging.info(f"Fetching NDBC station {self.station_id}: {url}")
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error fetching buoy data: {e}")
            raise FeedProviderError(f"Network error: {str(e)}")

        if not response.ok:
            raise FeedProviderError(
                f"Buoy data not available: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        record = parse_observation(response.text)
        if record is None:
            logging.info(f"NDBC station {self.station_id} returned no observations")
        return record


def _float_or_none(fields: List[str], index: int) -> Optional[float]:
    """Column value as float; missing, "MM" or garbage become None."""
    if index >= len(fields):
        return None
    try:
        value = float(fields[index])
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_observation(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the newest row of an NDBC realtime2 text file.

    Args:
        text: Full response body

    Returns:
        Dict with wind_direction, wind_speed (m/s), wind_gust (m/s),
        wave_height (m), pressure (hPa), air_temp (degC), water_temp (degC)
        and observed_at ("YY-MM-DD hh:mm"); unparseable values are None.
        None if there are fewer than three lines or the data row is blank.
    """
    lines = text.split("\n")
    if len(lines) < HEADER_LINES + 1:
        return None

    fields = lines[HEADER_LINES].split()
    if not fields:
        return None

    record: Dict[str, Any] = {name: _float_or_none(fields, index) for name, index in COLUMNS.items()}
    if len(fields) >= 5:
        record["observed_at"] = f"{fields[0]}-{fields[1]}-{fields[2]} {fields[3]}:{fields[4]}"
    else:
        record["observed_at"] = None
    return record


def buoy_from_record(record: Dict[str, Any]) -> BuoyReading:
    """
    Convert a raw metric record to nautical/imperial units.

    Raises:
        ValueError: If the record is not a dict of numbers/None
    """
    if not isinstance(record, dict):
        raise ValueError("Buoy record is not an object")

    def value(name: str) -> Optional[float]:
        raw = record.get(name)
        if raw is None:
            return None
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"Buoy field '{name}' is not a number: {raw!r}")
        return float(raw)

    observed_at = record.get("observed_at")
    return BuoyReading(
        wind_speed_knots=ms_to_knots(value("wind_speed")),
        wind_gust_knots=ms_to_knots(value("wind_gust")),
        wave_height_ft=meters_to_feet(value("wave_height")),
        pressure_hpa=value("pressure"),
        air_temp_f=celsius_to_fahrenheit(value("air_temp")),
        water_temp_f=celsius_to_fahrenheit(value("water_temp")),
        wind_direction_deg=value("wind_direction"),
        observed_at=observed_at if isinstance(observed_at, str) else None,
    )
