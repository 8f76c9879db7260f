"""Weather lookup backed by OpenWeatherMap with a seasonal fallback."""
from __future__ import annotations

import hashlib
import random
import time
from datetime import date, datetime, timezone
from typing import Any

import httpx
import structlog

from ..config import WeatherSettings, get_settings
from .types import ToolResult, WeatherData

logger = structlog.get_logger(__name__)

_SEASON_TEMPS = {
    "spring": (10, 20),
    "summer": (20, 30),
    "fall": (5, 15),
    "winter": (-5, 10),
}
_SEASON_CONDITIONS = {
    "spring": ["clear", "partly_cloudy", "rain"],
    "summer": ["clear", "partly_cloudy", "hot"],
    "fall": ["clear", "cloudy", "rain"],
    "winter": ["clear", "cloudy", "snow", "cold"],
}


def season_for(day: date) -> str:
    month = day.month
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "fall"
    return "winter"


def _parse_date(date_iso: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(date_iso.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class WeatherTool:
    def __init__(self, settings: WeatherSettings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings or get_settings().weather
        self._transport = transport

    async def get_weather(self, city: str, date_iso: str) -> ToolResult:
        start = time.perf_counter()
        target = _parse_date(date_iso)
        if not self._settings.api_key:
            return self._fallback(city, target, start)
        try:
            weather = await self._fetch(city, target)
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as exc:
            logger.warning("weather.api_failed", city=city, error=str(exc))
            return self._fallback(city, target, start)
        return ToolResult.ok("weather", weather, (time.perf_counter() - start) * 1000)

    async def _fetch(self, city: str, target: datetime) -> WeatherData:
        is_today = target.date() == datetime.now(timezone.utc).date()
        endpoint = "weather" if is_today else "forecast"
        params = {"q": city, "appid": self._settings.api_key, "units": "metric"}
        async with httpx.AsyncClient(transport=self._transport, timeout=self._settings.timeout_s) as client:
            response = await client.get(f"{self._settings.base_url}/{endpoint}", params=params)
        logger.info("weather.call", city=city, endpoint=endpoint, status_code=response.status_code)
        response.raise_for_status()
        return parse_weather_payload(response.json(), target)

    def _fallback(self, city: str, target: datetime, start: float) -> ToolResult:
        weather = seasonal_weather(city, target)
        return ToolResult.ok("weather-fallback", weather, (time.perf_counter() - start) * 1000)


def parse_weather_payload(data: dict[str, Any], target: datetime) -> WeatherData:
    """Normalise a current-weather or forecast response, picking the slot nearest ``target``."""
    if "list" in data:
        target_ts = target.timestamp()
        entry = min(data["list"], key=lambda slot: abs(slot["dt"] - target_ts))
        precipitation = (entry.get("rain") or {}).get("3h", 0)
    else:
        entry = data
        precipitation = (entry.get("rain") or {}).get("1h", 0)
    return WeatherData(
        temperature=round(entry["main"]["temp"]),
        condition=entry["weather"][0]["main"].lower(),
        humidity=entry["main"]["humidity"],
        wind_speed=entry["wind"]["speed"],
        precipitation=precipitation,
        timestamp=datetime.fromtimestamp(entry["dt"], tz=timezone.utc),
    )


def seasonal_weather(city: str, target: datetime) -> WeatherData:
    """Plausible weather for the season, stable for a given city and day."""
    season = season_for(target.date())
    seed = hashlib.sha256(f"{city.lower()}|{target.date().isoformat()}".encode("utf-8")).hexdigest()
    rng = random.Random(int(seed[:16], 16))
    low, high = _SEASON_TEMPS[season]
    condition = rng.choice(_SEASON_CONDITIONS[season])
    return WeatherData(
        temperature=round(low + rng.random() * (high - low)),
        condition=condition,
        humidity=round(30 + rng.random() * 50),
        wind_speed=round(rng.random() * 15),
        precipitation=round(rng.random() * 10) if condition in ("rain", "snow") else 0,
        timestamp=target,
    )


__all__ = ["WeatherTool", "parse_weather_payload", "seasonal_weather", "season_for"]
