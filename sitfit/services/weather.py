"""OpenWeatherMap client and weather-based outfit suggestions."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from sitfit.schemas.weather import DailyForecast, OutfitSuggestions, WeatherReport
from sitfit.utils.errors import WeatherUnavailable

# Upper temperature bound (°C, exclusive) -> clothing, accessories, tip, layers
TEMPERATURE_BANDS = [
    (0, ["Heavy winter coat", "Thermal underwear", "Thick sweater", "Wool pants", "Winter boots"],
     ["Thick scarf", "Insulated gloves", "Warm beanie", "Ear muffs"],
     "Freezing! Layer up with thermal wear.", 4),
    (10, ["Heavy coat", "Sweater", "Long pants", "Boots", "Long-sleeve shirt"],
     ["Scarf", "Gloves", "Beanie"],
     "Cold weather - dress warmly!", 3),
    (15, ["Jacket", "Long-sleeve shirt", "Jeans", "Closed shoes"],
     ["Light scarf"],
     "Cool weather - a jacket is recommended.", 2),
    (20, ["Light jacket or cardigan", "Long sleeves", "Jeans or pants", "Sneakers"],
     [],
     "Mild weather - perfect for layering.", 2),
    (25, ["T-shirt", "Light pants or jeans", "Sneakers", "Light dress"],
     [],
     "Pleasant weather - dress comfortably!", 1),
    (30, ["T-shirt", "Shorts or light pants", "Sandals", "Summer dress"],
     ["Sunglasses", "Sun hat"],
     "Warm weather - stay cool and comfortable.", 1),
    (float("inf"), ["Tank top", "Shorts", "Sandals", "Light breathable fabrics"],
     ["Sunglasses", "Wide-brim hat", "Sunscreen"],
     "Very hot! Wear light, breathable clothing.", 1),
]

WET_CONDITIONS = {"Rain", "Drizzle", "Thunderstorm"}
WINDY_SPEED = 20  # m/s
HUMID_PERCENT = 80
STEPS_PER_DAY = 8  # forecast entries are 3 hours apart
MAX_FORECAST_DAYS = 5


def suggest_outfit(temp: float, condition: str, wind_speed: float, humidity: int) -> OutfitSuggestions:
    """Suggest clothing for the given conditions."""
    for upper, clothing, accessories, tip, layers in TEMPERATURE_BANDS:
        if temp < upper:
            suggestions = OutfitSuggestions(
                clothing=list(clothing), accessories=list(accessories), tips=[tip], layers=layers
            )
            break

    if condition in WET_CONDITIONS:
        suggestions.accessories += ["Umbrella", "Waterproof jacket", "Rain boots"]
        suggestions.tips.append("Rain expected - bring waterproof gear!")
    if condition == "Snow":
        suggestions.accessories += ["Waterproof boots", "Waterproof gloves"]
        suggestions.tips.append("Snowy conditions - wear waterproof footwear.")
    if wind_speed > WINDY_SPEED:
        suggestions.accessories.append("Hair tie or clips")
        suggestions.tips.append("Windy conditions - secure loose clothing and accessories.")
    if humidity > HUMID_PERCENT:
        suggestions.tips.append("High humidity - choose breathable fabrics.")
    if condition == "Clear" and temp > 20:
        suggestions.accessories += ["Sunglasses", "Sunscreen"]
        suggestions.tips.append("Sunny day - protect yourself from UV rays.")

    suggestions.accessories = list(dict.fromkeys(suggestions.accessories))
    return suggestions


class WeatherClient:
    """Fetches current weather and forecasts from OpenWeatherMap."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = client

        if not api_key:
            self.logger.warning("Weather API key not found in environment variables")

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure httpx client exists."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
        return self.client

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise WeatherUnavailable("Weather API key not configured")

        client = await self._ensure_client()
        try:
            response = await client.get(
                f"{self.base_url}/{endpoint}",
                params={**params, "appid": self.api_key, "units": "metric"},
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise WeatherUnavailable(f"{endpoint} returned {e.response.status_code}: {e.response.text}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise WeatherUnavailable(f"{endpoint} request failed: {e}") from e

    async def current(self, lat: float, lon: float) -> WeatherReport:
        """Current conditions at ``lat``/``lon``.

        Raises:
            WeatherUnavailable: If the provider cannot be reached or answers unexpectedly
        """
        data = await self._get("weather", {"lat": lat, "lon": lon})
        try:
            return WeatherReport(
                temp=data["main"]["temp"],
                feels_like=data["main"]["feels_like"],
                condition=data["weather"][0]["main"],
                description=data["weather"][0]["description"],
                humidity=data["main"]["humidity"],
                wind_speed=data["wind"]["speed"],
                icon=data["weather"][0]["icon"],
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise WeatherUnavailable(f"Unexpected weather payload: {e!r}") from e

    async def forecast(self, lat: float, lon: float, days: int = MAX_FORECAST_DAYS) -> List[DailyForecast]:
        """Daily forecast with outfit suggestions, at most five days ahead.

        Each day averages the 3-hour steps that fall on it in the location's
        local time and takes its condition from the first step.

        Raises:
            WeatherUnavailable: If the provider cannot be reached or answers unexpectedly
        """
        days = max(1, min(days, MAX_FORECAST_DAYS))
        data = await self._get("forecast", {"lat": lat, "lon": lon, "cnt": days * STEPS_PER_DAY})

        try:
            offset = timedelta(seconds=(data.get("city") or {}).get("timezone", 0))
            grouped: Dict[date, List[Dict[str, Any]]] = {}
            for step in data["list"]:
                day = (datetime.fromtimestamp(step["dt"], tz=timezone.utc) + offset).date()
                grouped.setdefault(day, []).append(step)

            forecast = []
            for day, steps in grouped.items():
                temp = sum(step["main"]["temp"] for step in steps) / len(steps)
                humidity = sum(step["main"]["humidity"] for step in steps) / len(steps)
                wind_speed = max(step["wind"]["speed"] for step in steps)
                first = steps[0]["weather"][0]
                forecast.append(
                    DailyForecast(
                        day=day,
                        temp=round(temp),
                        condition=first["main"],
                        description=first["description"],
                        icon=first["icon"],
                        humidity=round(humidity),
                        wind_speed=wind_speed,
                        suggestions=suggest_outfit(temp, first["main"], wind_speed, round(humidity)),
                    )
                )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise WeatherUnavailable(f"Unexpected forecast payload: {e!r}") from e

        return forecast[:days]

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
