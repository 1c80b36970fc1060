# app/services/weather.py

import requests

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

TIMEOUT = 10

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,apparent_temperature,weather_code,wind_speed_10m"
DAILY_FIELDS = "weather_code,temperature_2m_max,temperature_2m_min"


# WMO weather codes as used by Open-Meteo
WEATHER_INTERPRETATION = {
    0: ("Clear sky", "Sun"),
    1: ("Mainly clear", "CloudSun"),
    2: ("Partly cloudy", "CloudSun"),
    3: ("Overcast", "Cloud"),
    45: ("Fog", "CloudFog"),
    48: ("Depositing rime fog", "CloudFog"),
    51: ("Drizzle: Light", "CloudDrizzle"),
    53: ("Drizzle: Moderate", "CloudDrizzle"),
    55: ("Drizzle: Dense intensity", "CloudDrizzle"),
    61: ("Rain: Slight", "CloudRain"),
    63: ("Rain: Moderate", "CloudRain"),
    65: ("Rain: Heavy intensity", "CloudRain"),
    71: ("Snow fall: Slight", "CloudSnow"),
    73: ("Snow fall: Moderate", "CloudSnow"),
    75: ("Snow fall: Heavy intensity", "CloudSnow"),
    95: ("Thunderstorm: Slight or moderate", "CloudLightning"),
}


class WeatherServiceError(Exception):
    pass


def describe_weather_code(code: int) -> dict:
    label, icon = WEATHER_INTERPRETATION.get(code, ("Unknown", "Cloud"))
    return {"label": label, "icon": icon}


def search_cities(query: str, count: int = 5) -> list[dict]:
    """
    Looks up candidate cities for a free-text query.
    Queries shorter than two characters are not sent.
    """
    if len(query.strip()) < 2:
        return []

    res = requests.get(
        GEOCODING_URL,
        params={"name": query.strip(), "count": count, "language": "en", "format": "json"},
        timeout=TIMEOUT,
    )
    res.raise_for_status()
    return [
        {
            "name": item["name"],
            "lat": item["latitude"],
            "lon": item["longitude"],
            "admin1": item.get("admin1"),
            "country": item.get("country"),
        }
        for item in res.json().get("results") or []
    ]


def get_weather(lat: float, lon: float, unit: str = "celsius") -> dict:
    """
    Fetches current conditions and the daily forecast for a coordinate.
    Raises WeatherServiceError on a failed or incomplete response.
    """
    if lat is None or lon is None:
        raise WeatherServiceError("Invalid location coordinates")

    params = {
        "latitude": lat,
        "longitude": lon,
        "current": CURRENT_FIELDS,
        "daily": DAILY_FIELDS,
        "timezone": "auto",
        "models": "best_match",
    }
    if unit == "fahrenheit":
        params["temperature_unit"] = "fahrenheit"

    try:
        res = requests.get(FORECAST_URL, params=params, timeout=TIMEOUT)
    except requests.RequestException as e:
        raise WeatherServiceError(str(e)) from e

    if not res.ok:
        try:
            reason = res.json().get("reason")
        except ValueError:
            reason = None
        raise WeatherServiceError(reason or "Failed to fetch weather data")

    data = res.json()
    current, daily = data.get("current"), data.get("daily")
    if not current or not daily:
        raise WeatherServiceError("Incomplete weather data received")

    return {
        "temperature": current["temperature_2m"],
        "weatherCode": current["weather_code"],
        "windSpeed": current["wind_speed_10m"],
        "humidity": current["relative_humidity_2m"],
        "apparentTemperature": current["apparent_temperature"],
        "time": current["time"],
        "daily": {
            "time": daily["time"],
            "temperatureMax": daily["temperature_2m_max"],
            "temperatureMin": daily["temperature_2m_min"],
            "weatherCode": daily["weather_code"],
        },
    }
