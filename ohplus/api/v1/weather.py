from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from ohplus.core.errors import IntegrationError
from ohplus.core.security import require_permission
from ohplus.services import weather

router = APIRouter(tags=["Weather"])


@router.get("/weather")
def get_weather(
    location: str = Query(weather.DEFAULT_LOCATION_KEY),
    current_user: dict = Depends(require_permission("Weather Forecast", "read")),
):
    return weather.get_philippines_weather(location)


@router.get("/weather/locations")
def list_locations(current_user: dict = Depends(require_permission("Weather Forecast", "read"))):
    return {"locations": list(weather.PHILIPPINES_LOCATIONS)}


@router.get("/weather/regions")
def list_regions(current_user: dict = Depends(require_permission("Weather Forecast", "read"))):
    return {"regions": weather.get_regions()}


@router.get("/weather/forecast")
def get_forecast(
    region: str = Query(weather.DEFAULT_REGION),
    current_user: dict = Depends(require_permission("Weather Forecast", "read")),
):
    try:
        return weather.get_region_forecast(region)
    except weather.RateLimitedError:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "Weather API rate limit exceeded. Please try again later."},
        )


@router.get("/weather/pagasa")
def get_pagasa_weather(
    region: str | None = None,
    current_user: dict = Depends(require_permission("Weather Forecast", "read")),
):
    if not region:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Region parameter is required"
        )
    try:
        return weather.get_pagasa_forecast(region)
    except IntegrationError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch PAGASA weather data"
        )
