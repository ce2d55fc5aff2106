import logging
from typing import Any, Dict, List, Optional

import httpx
import numpy as np
import xarray as xr

from config import settings
from Models.models import GeocodingResult, PollutantReading

logger = logging.getLogger(__name__)

CURRENT_VARIABLES = [
    "pm10",
    "pm2_5",
    "nitrogen_dioxide",
    "ozone",
    "sulphur_dioxide",
    "carbon_monoxide",
]

# Open-Meteo hourly variable -> dataset variable
HOURLY_VARIABLES = {
    "pm2_5": "pm25",
    "pm10": "pm10",
    "nitrogen_dioxide": "no2",
    "ozone": "o3",
}


# ==================== HTTP ====================
async def _get_json(
    url: str,
    params: Dict[str, Any],
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    if client is not None:
        response = await client.get(url, params=params, timeout=settings.HTTP_TIMEOUT)
        response.raise_for_status()
        return response.json()

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
        response = await own_client.get(url, params=params)
        response.raise_for_status()
        return response.json()


# ==================== Air Quality ====================
async def fetch_current_air_quality(
    lat: float,
    lon: float,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[PollutantReading]:
    """
    Fetch current pollutant concentrations (µg/m³) for a location
    Returns None when the provider fails or has no current block
    """
    params = {
        "latitude": lat,
        "longitude": lon,
        "current": ",".join(CURRENT_VARIABLES),
    }

    try:
        data = await _get_json(settings.OPEN_METEO_AIR_QUALITY_URL, params, client)
        current = data.get("current")
        if not current:
            logger.warning(f"No current air quality block for {lat},{lon}")
            return None
        return PollutantReading.model_validate(
            {name: current.get(name) for name in CURRENT_VARIABLES}
        )
    except (httpx.HTTPError, ValueError, TypeError) as e:
        logger.error(f"Open-Meteo air quality error: {str(e)}")
        return None


def build_forecast_dataset(hourly: Dict[str, List[Any]]) -> xr.Dataset:
    """
    Turn Open-Meteo's hourly block into a Dataset along a single time dimension
    Missing values become NaN
    """
    times = np.array(hourly["time"], dtype="datetime64[m]")
    data_vars = {}
    for source_name, name in HOURLY_VARIABLES.items():
        values = hourly.get(source_name)
        if values is None:
            values = [None] * len(times)
        data_vars[name] = (("time",), np.array(values, dtype=float), {"units": "µg/m³"})

    return xr.Dataset(data_vars, coords={"time": times})


async def fetch_air_quality_forecast(
    lat: float,
    lon: float,
    days: int = 3,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[xr.Dataset]:
    """Fetch the hourly concentration forecast for the next `days` days"""
    params = {
        "latitude": lat,
        "longitude": lon,
        "hourly": ",".join(HOURLY_VARIABLES),
        "forecast_days": days,
    }

    try:
        data = await _get_json(settings.OPEN_METEO_AIR_QUALITY_URL, params, client)
        hourly = data.get("hourly")
        if not hourly or not hourly.get("time"):
            logger.warning(f"No hourly forecast for {lat},{lon}")
            return None
        return build_forecast_dataset(hourly)
    except (httpx.HTTPError, KeyError, ValueError, TypeError) as e:
        logger.error(f"Open-Meteo forecast error: {str(e)}")
        return None


# ==================== Geocoding ====================
async def search_locations(
    query: str,
    count: int = 10,
    client: Optional[httpx.AsyncClient] = None,
) -> List[GeocodingResult]:
    params = {
        "name": query,
        "count": count,
        "language": "en",
        "format": "json",
    }

    try:
        data = await _get_json(settings.OPEN_METEO_GEOCODING_URL, params, client)
        return [GeocodingResult.model_validate(result) for result in data.get("results") or []]
    except (httpx.HTTPError, ValueError, TypeError) as e:
        logger.error(f"Open-Meteo geocoding error: {str(e)}")
        return []
