import pytest

from routewise.models.domain import WeatherReading
from routewise.services.weather import (
    bad_weather_categories,
    detect_weather_change,
    evaluate_weather_impact,
    impact_level,
    weather_tips,
)


@pytest.mark.parametrize(
    "description, impact, category",
    [
        ("晴", 0.0, "clear"),
        ("小雨", 0.1, "rain"),
        ("大雨", 0.3, "rain"),
        ("暴雨", 0.5, "rain"),
        ("暴雪", 0.6, "snow"),
        ("Dense fog", 0.5, "fog"),
        ("霾", 0.15, "haze"),
    ],
)
def test_impact_table(description, impact, category):
    result = evaluate_weather_impact(WeatherReading(description=description))
    assert result.impact == pytest.approx(impact)
    assert result.category == category


def test_impact_adds_wind_and_caps_at_one():
    windy = evaluate_weather_impact(WeatherReading(description="晴", wind_force=8))
    assert windy.impact == pytest.approx(0.3)
    assert windy.category == "wind"

    worst = evaluate_weather_impact(WeatherReading(description="暴雨 暴雪 大雾", wind_force=9))
    assert worst.impact == 1.0
    assert worst.level == "severe"
    assert worst.category == "snow"


def test_impact_levels():
    assert impact_level(0.0) == "none"
    assert impact_level(0.1) == "minor"
    assert impact_level(0.3) == "moderate"
    assert impact_level(0.5) == "severe"


def test_bad_weather_categories():
    assert bad_weather_categories(WeatherReading(description="小雨")) == frozenset()
    assert bad_weather_categories(WeatherReading(description="大雨")) == {"rain"}
    assert bad_weather_categories(WeatherReading(description="Heavy snow and haze")) == {"snow", "haze"}


def test_detect_weather_change_requires_new_bad_category():
    clear = WeatherReading(description="晴")
    heavy_rain = WeatherReading(description="大雨")
    rainstorm = WeatherReading(description="暴雨")

    assert detect_weather_change(clear, heavy_rain)
    assert not detect_weather_change(heavy_rain, heavy_rain)
    # still raining, just harder
    assert not detect_weather_change(heavy_rain, rainstorm)
    assert not detect_weather_change(heavy_rain, clear)
    assert not detect_weather_change(clear, WeatherReading(description="多云"))


def test_weather_tips():
    assert weather_tips(WeatherReading(description="晴", temperature_c=20)) == "Good weather for the trip"
    tips = weather_tips(WeatherReading(description="小雨", temperature_c=-3, wind_force=6))
    assert "slippery" in tips
    assert "ice" in tips
    assert "Strong wind" in tips
