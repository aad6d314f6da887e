"""Tests for wind_data module."""
import pytest
from wind_data import (
    EMPTY,
    BuoyReading,
    ForecastReading,
    MapViewState,
    PipelineResult,
)


def test_forecast_reading_creation():
    """Test creating ForecastReading with required fields."""
    reading = ForecastReading(speed_knots=8.7, direction_deg=180)

    assert reading.speed_knots == 8.7
    assert reading.direction_deg == 180
    assert reading.gust_knots is None
    assert reading.compass == "S"
    assert reading.beaufort.scale == 3


def test_forecast_reading_is_immutable():
    reading = ForecastReading(speed_knots=8.7, direction_deg=180)
    with pytest.raises(AttributeError):
        reading.speed_knots = 10.0


def test_buoy_reading_defaults_to_absent():
    """Every buoy field is optional."""
    reading = BuoyReading()
    assert reading.wind_speed_knots is None
    assert reading.wave_height_ft is None
    assert reading.observed_at is None
    assert reading.compass is None


def test_map_view_state_round_trip():
    state = MapViewState(center=(33.2, -117.4), zoom=12)
    assert MapViewState.from_dict(state.to_dict()) == state


@pytest.mark.parametrize("data", [
    None,
    [],
    {"center": [33.2], "zoom": 12},
    {"center": ["a", "b"], "zoom": 12},
    {"center": [33.2, -117.4]},
    {"center": [33.2, -117.4], "zoom": "12"},
    {"center": [133.2, -117.4], "zoom": 12},
])
def test_map_view_state_rejects_bad_data(data):
    with pytest.raises(ValueError):
        MapViewState.from_dict(data)


def test_pipeline_result_empty():
    result = PipelineResult.empty()
    assert result.status == EMPTY
    assert result.value is None
    assert result.fetched_at_millis is None
