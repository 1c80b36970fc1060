# server/api/insight.py

from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, Request

from core.insight import generate_insight
from core.security import get_current_user
from core.stores import UserIdentity


router = APIRouter(prefix="/api", tags=["insight"])


class DailyForecast(BaseModel):
    temperatureMax: list[float] = Field(default_factory=list)
    temperatureMin: list[float] = Field(default_factory=list)


class WeatherSnapshot(BaseModel):
    temperature: float
    weatherCode: int
    daily: DailyForecast = Field(default_factory=DailyForecast)


class InsightRequest(BaseModel):
    city: str = Field(..., min_length=1)
    weather: WeatherSnapshot


@router.post("/insight")
def weather_insight(req: InsightRequest, request: Request, current_user: UserIdentity = Depends(get_current_user)):
    settings = request.app.state.settings
    text = generate_insight(
        city=req.city,
        temperature=req.weather.temperature,
        weather_code=req.weather.weatherCode,
        temp_max=req.weather.daily.temperatureMax,
        temp_min=req.weather.daily.temperatureMin,
        api_key=settings.openai_api_key,
        model=settings.insight_model,
    )
    return {"insight": text}
