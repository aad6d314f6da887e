"""Integration tests - can optionally hit real APIs (disabled by default)."""
import os
import pytest
from cache_store import CacheStore, MemoryStore
from feed_service import FeedService
from ndbc_provider import NdbcBuoyProvider, buoy_from_record
from openweather_provider import OpenWeatherProvider, forecast_from_payload
from wind_data import OK


@pytest.mark.skipif(
    not os.environ.get("OPENWEATHER_API_KEY"),
    reason="OPENWEATHER_API_KEY not set - skipping integration test"
)
def test_openweather_integration():
    """
    Integration test that hits the real OpenWeather API.

    Set OPENWEATHER_API_KEY environment variable to run this test.
    """
    provider = OpenWeatherProvider(
        api_key=os.environ.get("OPENWEATHER_API_KEY"),
        lat=33.2061111,
        lon=-117.3905556,
    )

    reading = forecast_from_payload(provider.fetch())

    assert reading.speed_knots >= 0
    assert 0 <= reading.direction_deg < 360


@pytest.mark.skipif(
    not os.environ.get("OPENWEATHER_API_KEY"),
    reason="OPENWEATHER_API_KEY not set - skipping integration test"
)
def test_forecast_service_integration():
    """Integration test for FeedService with real API."""
    provider = OpenWeatherProvider(
        api_key=os.environ.get("OPENWEATHER_API_KEY"),
        lat=33.2061111,
        lon=-117.3905556,
    )
    service = FeedService("wind", provider, CacheStore(MemoryStore()), "windData", forecast_from_payload)

    first = service.refresh()
    assert first.status == OK

    # Second call should use cache
    second = service.refresh()
    assert second.fetched_at_millis == first.fetched_at_millis


@pytest.mark.skipif(
    not os.environ.get("WINDMAP_NDBC_INTEGRATION"),
    reason="WINDMAP_NDBC_INTEGRATION not set - skipping integration test"
)
def test_ndbc_integration():
    """Fetches the live feed directly (no proxy)."""
    record = NdbcBuoyProvider(station_id="46224", proxy_template="").fetch()

    assert record is not None
    assert buoy_from_record(record).observed_at
