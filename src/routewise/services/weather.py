"""Weather impact evaluation and change detection.

Descriptions come from the provider in Chinese (AMap) but English phrases are
matched too, so readings from other sources evaluate the same way.
"""

from __future__ import annotations

from ..models.domain import WeatherImpact, WeatherReading

# (category, [(keywords, impact, reason), ...]); only the first matching tier
# of each category counts.
_IMPACT_RULES: tuple[tuple[str, tuple[tuple[tuple[str, ...], float, str], ...]], ...] = (
    (
        "rain",
        (
            (("暴雨", "大暴雨", "rainstorm", "torrential"), 0.5, "rainstorm"),
            (("大雨", "中雨", "heavy rain", "moderate rain"), 0.3, "rain"),
            (("雨", "rain", "drizzle", "shower"), 0.1, "light rain"),
        ),
    ),
    (
        "snow",
        (
            (("暴雪", "大雪", "blizzard", "heavy snow"), 0.6, "heavy snow"),
            (("雪", "snow", "sleet"), 0.3, "snow"),
        ),
    ),
    (
        "fog",
        (
            (("大雾", "浓雾", "dense fog", "heavy fog"), 0.5, "dense fog"),
            (("雾", "fog", "mist"), 0.2, "fog"),
        ),
    ),
    (
        "haze",
        ((("霾", "haze", "smog"), 0.15, "haze"),),
    ),
)

# Keywords that make a category count as "bad weather" for change detection.
_SEVERE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "rain": ("暴雨", "大雨", "rainstorm", "torrential", "heavy rain"),
    "snow": ("大雪", "暴雪", "blizzard", "heavy snow"),
    "fog": ("大雾", "浓雾", "dense fog", "heavy fog"),
    "haze": ("霾", "haze", "smog"),
}


def _matches(description: str, keywords: tuple[str, ...]) -> bool:
    lowered = description.lower()
    return any(keyword in lowered for keyword in keywords)


def evaluate_weather_impact(reading: WeatherReading) -> WeatherImpact:
    impact = 0.0
    reasons: list[str] = []
    category = "clear"
    strongest = 0.0

    for name, tiers in _IMPACT_RULES:
        for keywords, weight, reason in tiers:
            if _matches(reading.description, keywords):
                impact += weight
                reasons.append(reason)
                if weight > strongest:
                    strongest, category = weight, name
                break

    wind_weight, wind_reason = 0.0, ""
    if reading.wind_force >= 8:
        wind_weight, wind_reason = 0.3, "gale"
    elif reading.wind_force >= 6:
        wind_weight, wind_reason = 0.15, "strong wind"
    if wind_weight:
        impact += wind_weight
        reasons.append(wind_reason)
        if wind_weight > strongest:
            category = "wind"

    impact = min(impact, 1.0)
    return WeatherImpact(impact=impact, level=impact_level(impact), category=category, reasons=tuple(reasons))


def impact_level(impact: float) -> str:
    if impact >= 0.5:
        return "severe"
    if impact >= 0.3:
        return "moderate"
    if impact >= 0.1:
        return "minor"
    return "none"


def bad_weather_categories(reading: WeatherReading) -> frozenset[str]:
    return frozenset(
        category for category, keywords in _SEVERE_KEYWORDS.items() if _matches(reading.description, keywords)
    )


def detect_weather_change(previous: WeatherReading, current: WeatherReading) -> bool:
    """True when the weather turned into a bad-weather category that was not active before."""

    if previous.description == current.description:
        return False
    return bool(bad_weather_categories(current) - bad_weather_categories(previous))


def weather_tips(reading: WeatherReading) -> str:
    tips: list[str] = []
    if _matches(reading.description, ("雨", "rain", "drizzle", "shower")):
        tips.append("Roads may be slippery, drive carefully and bring rain gear")
    if _matches(reading.description, ("雪", "snow", "sleet")):
        tips.append("Snow on the road, slow down")
    if _matches(reading.description, ("雾", "霾", "fog", "mist", "haze", "smog")):
        tips.append("Low visibility, turn on fog lights")
    if reading.temperature_c is not None:
        if reading.temperature_c > 35:
            tips.append("High temperature, stay hydrated")
        elif reading.temperature_c < 0:
            tips.append("Freezing temperature, watch for ice")
    if reading.wind_force >= 6:
        tips.append("Strong wind, take care at highway speeds")
    return "; ".join(tips) if tips else "Good weather for the trip"
