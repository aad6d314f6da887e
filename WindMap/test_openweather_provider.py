"""Tests for OpenWeather provider."""
import pytest
import requests
from unittest.mock import Mock, patch
from feed_provider import ConfigurationError, CredentialNotActiveError, FeedProviderError
from openweather_provider import OpenWeatherProvider, forecast_from_payload
from wind_data import ForecastReading


@pytest.fixture
def sample_openweather_response():
    """Sample OpenWeather API response (imperial units)."""
    return {
        "coord": {"lon": -117.3906, "lat": 33.2061},
        "weather": [
            {
                "id": 800,
                "main": "Clear",
                "description": "clear sky",
                "icon": "01d"
            }
        ],
        "base": "stations",
        "main": {
            "temp": 68.5,
            "feels_like": 67.9,
            "pressure": 1014,
            "humidity": 72
        },
        "visibility": 10000,
        "wind": {"speed": 10.0, "deg": 270, "gust": 20.0},
        "dt": 1684929490,
        "timezone": -25200,
        "name": "Oceanside",
        "id": 5378771
    }


@pytest.fixture
def provider():
    """Create OpenWeather provider instance."""
    return OpenWeatherProvider(
        api_key="test_key",
        lat=33.2061111,
        lon=-117.3905556,
    )


def _response(ok=True, status_code=200, json_data=None, reason="OK"):
    mock_response = Mock()
    mock_response.ok = ok
    mock_response.status_code = status_code
    mock_response.reason = reason
    mock_response.json.return_value = json_data
    return mock_response


def test_openweather_provider_requires_api_key():
    """Missing key is a configuration error, not a provider error."""
    with pytest.raises(ConfigurationError) as exc_info:
        OpenWeatherProvider(api_key="", lat=33.2, lon=-117.4)

    assert not isinstance(exc_info.value, FeedProviderError)
    assert "OPENWEATHER_API_KEY" in str(exc_info.value)

    with pytest.raises(ConfigurationError):
        OpenWeatherProvider(api_key=None, lat=33.2, lon=-117.4)


def test_openweather_provider_success(provider, sample_openweather_response):
    """Test successful API call returns the raw payload."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = _response(json_data=sample_openweather_response)

        data = provider.fetch()

        assert data == sample_openweather_response
        args, kwargs = mock_get.call_args
        assert args[0] == OpenWeatherProvider.BASE_URL
        assert kwargs["params"] == {
            "lat": 33.2061111,
            "lon": -117.3905556,
            "appid": "test_key",
            "units": "imperial",
        }
        assert kwargs["timeout"] == 10


def test_openweather_provider_unauthorized(provider):
    """401 means the key is not active yet."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = _response(
            ok=False,
            status_code=401,
            json_data={"cod": 401, "message": "Invalid API key"},
            reason="Unauthorized",
        )

        with pytest.raises(CredentialNotActiveError) as exc_info:
            provider.fetch()

        assert exc_info.value.status_code == 401
        assert exc_info.value.retryable is False
        assert "not yet activated" in str(exc_info.value)


def test_openweather_provider_http_error(provider):
    """Other statuses report status and message."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = _response(
            ok=False,
            status_code=429,
            json_data={"cod": 429, "message": "Too many requests"},
            reason="Too Many Requests",
        )

        with pytest.raises(FeedProviderError) as exc_info:
            provider.fetch()

        assert not isinstance(exc_info.value, CredentialNotActiveError)
        assert "429" in str(exc_info.value)
        assert "Too many requests" in str(exc_info.value)


def test_openweather_provider_http_error_non_json(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_response = _response(ok=False, status_code=502, reason="Bad Gateway")
        mock_response.json.side_effect = ValueError("No JSON")
        mock_response.text = "<html>bad gateway</html>"
        mock_get.return_value = mock_response

        with pytest.raises(FeedProviderError) as exc_info:
            provider.fetch()

        assert exc_info.value.status_code == 502
        assert exc_info.value.retryable is True
        assert "Bad Gateway" in str(exc_info.value)


def test_openweather_provider_network_error(provider):
    """Test handling of network errors."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.side_effect = requests.exceptions.ConnectionError("ERR_NETWORK_CHANGED")

        with pytest.raises(FeedProviderError) as exc_info:
            provider.fetch()

        assert "Network error" in str(exc_info.value)
        assert exc_info.value.retryable is True


def test_openweather_provider_missing_wind(provider):
    """A body without wind is rejected so it never gets cached."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = _response(json_data={"main": {"temp": 20.0}})

        with pytest.raises(FeedProviderError) as exc_info:
            provider.fetch()

        assert "missing 'wind' block" in str(exc_info.value)


def test_forecast_from_payload_converts_to_knots(sample_openweather_response):
    reading = forecast_from_payload(sample_openweather_response)

    assert isinstance(reading, ForecastReading)
    assert f"{reading.speed_knots:.1f}" == "8.7"
    assert f"{reading.gust_knots:.1f}" == "17.4"
    assert reading.direction_deg == 270


def test_forecast_from_payload_without_gust():
    reading = forecast_from_payload({"wind": {"speed": 0, "deg": 359.6}})
    assert reading.gust_knots is None
    assert reading.speed_knots == 0.0
    assert reading.direction_deg == 0


@pytest.mark.parametrize("deg, expected", [
    (180.5, 181),
    (0.5, 1),
    (2.5, 3),
    (359.5, 0),
    (90.4, 90),
])
def test_forecast_from_payload_rounds_half_up(deg, expected):
    reading = forecast_from_payload({"wind": {"speed": 5, "deg": deg}})
    assert reading.direction_deg == expected


@pytest.mark.parametrize("payload", [
    None,
    {},
    {"wind": None},
    {"wind": {"speed": 5}},
    {"wind": {"deg": 5}},
    {"wind": {"speed": "fast", "deg": 5}},
    {"wind": {"speed": 5, "deg": 5, "gust": "lots"}},
])
def test_forecast_from_payload_rejects_bad_payload(payload):
    with pytest.raises(ValueError):
        forecast_from_payload(payload)
