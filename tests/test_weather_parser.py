"""Tests for shaping upstream payloads into response models."""

import pytest

from conftest import START_TIME, make_forecast_payload
from zipweather.weather_parser import (
    WeatherParseError,
    celsius_to_fahrenheit,
    parse_current,
    parse_daily_forecasts,
)


def test_celsius_to_fahrenheit():
    assert celsius_to_fahrenheit(0) == 32
    assert celsius_to_fahrenheit(100) == 212
    assert celsius_to_fahrenheit(-40) == -40


class TestParseCurrent:

    def test_fields(self, current_payload):
        current = parse_current(current_payload)

        assert current.temperature.celsius == 20.0
        assert current.temperature.fahrenheit == 68.0
        assert current.humidity == 65
        assert current.wind_speed == 3.6
        assert current.description == "clear sky"
        assert current.icon == "01d"

    def test_serializes_with_aliases(self, current_payload):
        data = parse_current(current_payload).model_dump(by_alias=True)
        assert data["windSpeed"] == 3.6
        assert data["temperature"] == {"celsius": 20.0, "fahrenheit": 68.0}

    def test_uses_first_condition(self, current_payload):
        current_payload["weather"].append({"description": "mist", "icon": "50d"})
        assert parse_current(current_payload).description == "clear sky"

    def test_missing_main(self, current_payload):
        del current_payload["main"]
        with pytest.raises(WeatherParseError):
            parse_current(current_payload)

    def test_empty_conditions(self, current_payload):
        current_payload["weather"] = []
        with pytest.raises(WeatherParseError):
            parse_current(current_payload)


class TestParseDailyForecasts:

    def test_every_eighth_entry_five_days(self, forecast_payload):
        daily = parse_daily_forecasts(forecast_payload)

        assert len(daily) == 5
        assert [d.temperature.min for d in daily] == [10.0, 18.0, 26.0, 34.0, 42.0]
        assert [d.temperature.max for d in daily] == [20.0, 28.0, 36.0, 44.0, 52.0]
        assert [d.description for d in daily] == [
            "conditions 0", "conditions 8", "conditions 16", "conditions 24", "conditions 32",
        ]
        assert daily[1].humidity == 58
        assert daily[1].wind_speed == 4.0
        assert daily[0].icon == "02d"

    def test_short_forecast(self):
        daily = parse_daily_forecasts(make_forecast_payload(entries=10))
        assert len(daily) == 2

    def test_empty_forecast(self):
        assert parse_daily_forecasts(make_forecast_payload(entries=0)) == []

    def test_dates_in_city_time(self, forecast_payload):
        daily = parse_daily_forecasts(forecast_payload)
        assert [d.date for d in daily] == [
            "11/14/2023", "11/15/2023", "11/16/2023", "11/17/2023", "11/18/2023",
        ]

    def test_date_uses_timezone_offset(self):
        payload = make_forecast_payload(entries=1, timezone_offset=-18000)
        # Midnight UTC on the 15th is still the 14th in New York
        payload["list"][0]["dt"] = START_TIME + 12 * 60 * 60
        assert parse_daily_forecasts(payload)[0].date == "11/14/2023"

    def test_date_defaults_to_utc(self):
        payload = make_forecast_payload(entries=1)
        del payload["city"]
        payload["list"][0]["dt"] = START_TIME + 12 * 60 * 60
        assert parse_daily_forecasts(payload)[0].date == "11/15/2023"

    def test_missing_list(self):
        with pytest.raises(WeatherParseError):
            parse_daily_forecasts({"cod": "200"})

    def test_malformed_entry(self, forecast_payload):
        del forecast_payload["list"][8]["main"]
        with pytest.raises(WeatherParseError):
            parse_daily_forecasts(forecast_payload)
