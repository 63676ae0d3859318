"""API endpoints for weather-based outfit suggestions."""

from typing import List

from fastapi import APIRouter, Depends, Query

from sitfit.dependencies import get_weather_client
from sitfit.schemas.weather import CurrentWeatherResponse, DailyForecast
from sitfit.security import Identity, get_current_identity
from sitfit.services.weather import MAX_FORECAST_DAYS, WeatherClient, suggest_outfit

router = APIRouter(prefix="/api/weather", tags=["weather"])


@router.get("/current", response_model=CurrentWeatherResponse)
async def get_current_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    identity: Identity = Depends(get_current_identity),
    weather: WeatherClient = Depends(get_weather_client),
) -> CurrentWeatherResponse:
    """Current weather at a location with outfit suggestions.

    Raises:
        WeatherUnavailable: If the weather provider fails
    """
    report = await weather.current(lat, lon)
    return CurrentWeatherResponse(
        weather=report,
        suggestions=suggest_outfit(report.temp, report.condition, report.wind_speed, report.humidity),
    )


@router.get("/forecast", response_model=List[DailyForecast])
async def get_forecast(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    days: int = Query(MAX_FORECAST_DAYS, ge=1, le=MAX_FORECAST_DAYS),
    identity: Identity = Depends(get_current_identity),
    weather: WeatherClient = Depends(get_weather_client),
) -> List[DailyForecast]:
    return await weather.forecast(lat, lon, days)
