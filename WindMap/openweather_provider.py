"""OpenWeather Current Weather API provider implementation."""
import logging
import math
import requests
from typing import Any, Dict
from feed_provider import (
    ConfigurationError,
    CredentialNotActiveError,
    FeedProviderBase,
    FeedProviderError,
)
from units import mph_to_knots
from wind_data import ForecastReading


class OpenWeatherProvider(FeedProviderBase):
    """
    Wind provider using OpenWeather Current Weather API.

    Uses the free Current Weather API: https://openweathermap.org/current
    Requests imperial units, so wind speeds come back in mph. The raw JSON
    is what gets cached; forecast_from_payload() turns it into knots.
    """

    BASE_URL = "https://api.openweathermap.org/data/2.5/weather"

    def __init__(
        self,
        api_key: str,
        lat: float,
        lon: float,
        timeout: int = 10
    ):
        """
        Initialize OpenWeather provider.

        Args:
            api_key: OpenWeather API key
            lat: Latitude (-90 to 90)
            lon: Longitude (-180 to 180)
            timeout: HTTP request timeout in seconds

        Raises:
            ConfigurationError: If api_key is empty
        """
        if not api_key:
            raise ConfigurationError(
                "OpenWeatherMap API key not found. Please add OPENWEATHER_API_KEY to your .env file"
            )
        self.api_key = api_key
        self.lat = lat
        self.lon = lon
        self.units = "imperial"
        self.timeout = timeout

    def fetch(self) -> Dict[str, Any]:
        """
        Fetch current conditions from OpenWeather Current Weather API.

        Returns:
            The decoded JSON response

        Raises:
            CredentialNotActiveError: On HTTP 401
            FeedProviderError: If the API request fails or the response has no wind
        """
        params = {
            "lat": self.lat,
            "lon": self.lon,
            "appid": self.api_key,
            "units": self.units,
        }

        try:
            logging.info(f"Making OpenWeather API request: {self.BASE_URL}")
            logging.debug(f"Request parameters: lat={self.lat}, lon={self.lon}, units={self.units}")

            response = requests.get(self.BASE_URL, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)

            data = response.json()
            logging.debug(f"API response (truncated): {str(data)[:500]}...")

            # Validate before caching so a bad body never replaces good data
            forecast_from_payload(data)
            return data

        except FeedProviderError:
            raise
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise FeedProviderError(f"Network error: {str(e)}")
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse API response: {e}", exc_info=True)
            raise FeedProviderError(f"Failed to parse response: {str(e)}")

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from OpenWeather error response."""
        if response.status_code == 401:
            raise CredentialNotActiveError()
        try:
            error_data = response.json()
            message = error_data.get("message") or response.reason
            logging.error(f"OpenWeather API error response: {error_data}")
        except ValueError:
            # Not JSON, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            message = response.reason
        raise FeedProviderError(
            f"API request failed: {response.status_code} - {message}",
            status_code=response.status_code,
        )


def _number(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{field}' is not a number: {value!r}")
    return float(value)


def forecast_from_payload(data: Dict[str, Any]) -> ForecastReading:
    """
    Convert a raw OpenWeather response (imperial units) to a ForecastReading.

    Args:
        data: Decoded JSON with at least wind.speed and wind.deg

    Returns:
        ForecastReading in knots

    Raises:
        ValueError: If the wind block is missing or not numeric
    """
    if not isinstance(data, dict):
        raise ValueError("Response is not a JSON object")
    wind = data.get("wind")
    if not isinstance(wind, dict):
        raise ValueError("Response missing 'wind' block")
    if "speed" not in wind or "deg" not in wind:
        raise ValueError("Response 'wind' block missing speed or deg")

    speed = _number(wind["speed"], "wind.speed")
    deg = _number(wind["deg"], "wind.deg")
    gust = wind.get("gust")
    gust_knots = mph_to_knots(_number(gust, "wind.gust")) if gust is not None else None

    return ForecastReading(
        speed_knots=mph_to_knots(speed),
        direction_deg=math.floor(deg + 0.5) % 360,
        gust_knots=gust_knots,
    )
