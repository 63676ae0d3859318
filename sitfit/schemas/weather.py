"""Schemas for weather reports and weather-based outfit suggestions."""

from datetime import date
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class WeatherReport(BaseModel):
    """Current conditions at a location, in metric units."""

    temp: float
    feels_like: float = Field(alias="feelsLike")
    condition: str
    description: str
    humidity: int
    wind_speed: float = Field(alias="windSpeed")
    icon: str

    model_config = ConfigDict(populate_by_name=True)


class OutfitSuggestions(BaseModel):
    clothing: List[str] = Field(default_factory=list)
    accessories: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    layers: int = 1


class CurrentWeatherResponse(BaseModel):
    weather: WeatherReport
    suggestions: OutfitSuggestions


class DailyForecast(BaseModel):
    """One day of a forecast, averaged over the provider's 3-hour steps."""

    day: date = Field(alias="date")
    temp: int
    condition: str
    description: str
    icon: str
    humidity: int
    wind_speed: float = Field(alias="windSpeed")
    suggestions: OutfitSuggestions

    model_config = ConfigDict(populate_by_name=True)
