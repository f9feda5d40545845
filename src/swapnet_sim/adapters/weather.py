"""WMO weather codes → demand multiplier.

Bad weather pushes riders off two-wheelers and onto battery-swap fleets, so
the multiplier rises with precipitation and storms.  Extreme heat and cold
have their own multiplier; the larger of the two wins.
"""

from __future__ import annotations

from swapnet_sim.models.network import WeatherData

# (highest code in band, condition, description, multiplier), ascending
_WMO_BANDS: list[tuple[int, str, str, float]] = [
    (0, "clear", "Clear sky", 1.0),
    (3, "cloudy", "Partly cloudy", 1.0),
    (48, "fog", "Fog", 1.1),
    (55, "drizzle", "Drizzle", 1.15),
    (57, "freezing_drizzle", "Freezing drizzle", 1.2),
    (65, "rain", "Rain", 1.3),
    (67, "freezing_rain", "Freezing rain", 1.4),
    (77, "snow", "Snow", 1.3),
    (82, "rain_showers", "Rain showers", 1.35),
    (86, "snow_showers", "Snow showers", 1.3),
    (95, "thunderstorm", "Thunderstorm", 1.5),
    (99, "thunderstorm_hail", "Thunderstorm with hail", 1.5),
]


def classify_wmo(code: int) -> tuple[str, str, float]:
    """Return ``(condition, description, multiplier)`` for a WMO code."""
    if code < 0:
        return "unknown", "Unknown", 1.0
    for upper, condition, description, multiplier in _WMO_BANDS:
        if code <= upper:
            return condition, description, multiplier
    return "unknown", "Unknown", 1.0


def temperature_multiplier(temp_c: float) -> float:
    if temp_c >= 45:
        return 1.3
    if temp_c >= 40:
        return 1.2
    if temp_c >= 35:
        return 1.1
    if temp_c <= 5:
        return 1.15
    return 1.0


def weather_from_wmo(code: int, temperature: float = 30.0) -> WeatherData:
    condition, description, weather_mult = classify_wmo(code)
    multiplier = round(max(weather_mult, temperature_multiplier(temperature)), 2)
    return WeatherData(
        multiplier=multiplier,
        condition=condition,
        description=description,
        temperature=temperature,
        is_fallback=False,
    )


__all__ = ["classify_wmo", "temperature_multiplier", "weather_from_wmo"]
