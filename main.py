from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Dict, List, Optional, Tuple
import datetime as dt
import numpy as np
import logging
import traceback

from config import settings

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)
from Models.models import (
    AQIResult,
    CurrentAQIResponse,
    FireDetection,
    ForecastHour,
    ForecastResponse,
    GeocodingResult,
    Location,
    Pollutant,
    PollutantReading,
    SubIndexResponse,
    TriggeredAlert,
    UserAlert,
    UserAlertCreate,
    UserAlertUpdate,
    UserLocation,
    UserLocationCreate,
)
from Models.aqi_calculator import AQICalculator, POLLUTANT_ORDER
from Data_sources.open_meteo import fetch_air_quality_forecast, fetch_current_air_quality, search_locations
from Data_sources.nasa_firms import fetch_fire_detections
from Storage.memory_storage import MemoryStorage, storage

# Served when the upstream provider has no data
FALLBACK_READING = PollutantReading(pm25=35.6, pm10=58.2, no2=42.1, o3=68.5)

app = FastAPI(
    title="AeroAware Backend API",
    description="Air quality dashboard backend with Indian National AQI (CPCB) calculation",
    version=settings.VERSION,
    )

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_storage() -> MemoryStorage:
    return storage


def _utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


async def _current_reading(lat: float, lon: float) -> Tuple[PollutantReading, str]:
    reading = await fetch_current_air_quality(lat, lon)
    if reading is None:
        logger.warning(f"Using fallback reading for {lat},{lon}")
        return FALLBACK_READING, "fallback"
    return reading, "open-meteo"

# ==================== API Endpoints ====================

@app.get("/")
async def root():
    return {
        "message": "Air quality dashboard API with Indian National AQI",
        "version": settings.VERSION,
        "standard": "CPCB",
        "pollutants": [p.value for p in POLLUTANT_ORDER],
        "endpoints": {
            "calculate_aqi": "POST /aqi/calculate",
            "sub_index": "/aqi/subindex/{pollutant}?concentration={value}",
            "current_aqi": "/aqi/current?lat={latitude}&lon={longitude}",
            "forecast": "/aqi/forecast?lat={latitude}&lon={longitude}",
            "location_search": "/locations/search?query={name}",
            "fires": "/fires?lat={latitude}&lon={longitude}",
            "health": "/health"
        }
    }

# Custom exception handler for request validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error: {exc.errors()}")
    logger.error(f"Request URL: {request.url}")
    logger.error(f"Query Params: {request.query_params}")
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Invalid request parameters",
            "errors": jsonable_encoder(exc.errors()),
            "query_params": dict(request.query_params),
            "url": str(request.url)
        },
    )

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}")
    logger.error(traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"},
    )

@app.post("/aqi/calculate", response_model=AQIResult)
async def calculate_aqi(reading: PollutantReading):
    """Compute the CPCB AQI for caller-supplied concentrations (µg/m³)"""
    result = AQICalculator.compute_aqi(reading)
    logger.info(f"Calculated AQI {result.index} ({result.category}), dominant: {result.dominant_pollutant}")
    return result

@app.get("/aqi/subindex/{pollutant}", response_model=SubIndexResponse)
async def get_sub_index(
    pollutant: str,
    concentration: float = Query(..., description="Concentration in µg/m³")
):
    """Sub-index of a single pollutant (pm25, pm10, no2 or o3)"""
    try:
        kind = Pollutant(pollutant.lower())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Pollutant must be one of {', '.join(p.value for p in POLLUTANT_ORDER)}"
        )

    value = AQICalculator.sub_index(concentration, kind)
    band = AQICalculator.aqi_to_category(value)
    return SubIndexResponse(
        pollutant=kind,
        concentration=concentration,
        sub_index=value,
        category=band.category,
        color=band.color,
    )

@app.get("/aqi/current", response_model=CurrentAQIResponse)
async def get_current_aqi(
    request: Request,
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    location_name: Optional[str] = Query(None, description="Location name")
):
    """
    Get current AQI for a location from Open-Meteo concentrations
    Falls back to a fixed reading when the provider has no data
    """
    logger.info(f"Received request: {request.url}")

    reading, source = await _current_reading(lat, lon)
    result = AQICalculator.compute_aqi(reading)

    logger.info(f"PM2.5: {reading.pm25} PM10: {reading.pm10} NO2: {reading.no2} O3: {reading.o3} ({source})")
    logger.info(f"AQI: {result.index} ({result.category}), sub-indices: {result.sub_indices}")

    return CurrentAQIResponse(
        aqi=result,
        pollutants=reading,
        source=source,
        location=Location(
            latitude=lat,
            longitude=lon,
            name=location_name or f"Location at {lat:.4f}, {lon:.4f}"
        ),
        timestamp=_utc_now(),
    )

@app.get("/aqi/forecast", response_model=ForecastResponse)
async def get_aqi_forecast(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    days: int = Query(3, ge=1, le=5, description="Forecast days")
):
    """Hourly concentration forecast with the CPCB AQI for every hour"""
    ds = await fetch_air_quality_forecast(lat, lon, days=days)
    if ds is None:
        raise HTTPException(status_code=502, detail="Failed to fetch forecast data")

    ds = AQICalculator.add_aqi_to_dataset(ds)

    def _value(name, idx):
        value = float(ds[name].values[idx])
        return None if np.isnan(value) else value

    hourly = []
    for idx, time in enumerate(ds["time"].values):
        aqi = int(ds["aqi"].values[idx])
        dominant = int(ds["dominant_index"].values[idx])
        hourly.append(ForecastHour(
            time=str(np.datetime_as_string(time, unit="m")),
            pm25=_value("pm25", idx),
            pm10=_value("pm10", idx),
            no2=_value("no2", idx),
            o3=_value("o3", idx),
            aqi=aqi,
            category=AQICalculator.aqi_to_category(aqi).category,
            dominant_pollutant=POLLUTANT_ORDER[dominant].value if dominant >= 0 else None,
        ))

    has_hours = ds.sizes["time"] > 0
    return ForecastResponse(
        location=Location(latitude=lat, longitude=lon),
        hourly=hourly,
        peak_aqi=int(ds["aqi"].max()) if has_hours else 0,
        mean_aqi=round(float(ds["aqi"].mean()), 1) if has_hours else 0.0,
        source="open-meteo",
    )

@app.get("/locations/search", response_model=List[GeocodingResult])
async def get_locations(
    query: str = Query(..., min_length=1, description="Place name")
):
    return await search_locations(query)

@app.get("/fires", response_model=List[FireDetection])
async def get_fires(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    days: int = Query(1, ge=1, le=10)
):
    """Active fire detections from NASA FIRMS around a location"""
    fires = await fetch_fire_detections(lat, lon, days=days)
    logger.info(f"Found {len(fires)} fire detections near {lat},{lon}")
    return fires

# ==================== User Locations & Alerts ====================

@app.get("/users/{user_id}/locations", response_model=List[UserLocation])
def list_user_locations(user_id: str, store: MemoryStorage = Depends(get_storage)):
    return store.get_user_locations(user_id)

@app.post("/users/{user_id}/locations", response_model=UserLocation)
def create_user_location(
    user_id: str,
    location: UserLocationCreate,
    store: MemoryStorage = Depends(get_storage)
):
    return store.create_user_location(user_id, location)

@app.delete("/users/locations/{location_id}")
def delete_user_location(location_id: str, store: MemoryStorage = Depends(get_storage)):
    try:
        store.delete_user_location(location_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Location {location_id} not found")
    return {"success": True}

@app.get("/users/{user_id}/alerts", response_model=List[UserAlert])
def list_user_alerts(user_id: str, store: MemoryStorage = Depends(get_storage)):
    return store.get_user_alerts(user_id)

@app.post("/users/{user_id}/alerts", response_model=UserAlert)
def create_user_alert(
    user_id: str,
    alert: UserAlertCreate,
    store: MemoryStorage = Depends(get_storage)
):
    try:
        return store.create_user_alert(user_id, alert)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Location {alert.location_id} not found")

@app.patch("/users/alerts/{alert_id}", response_model=UserAlert)
def update_user_alert(
    alert_id: str,
    update: UserAlertUpdate,
    store: MemoryStorage = Depends(get_storage)
):
    try:
        return store.update_user_alert(alert_id, update.enabled)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")

@app.delete("/users/alerts/{alert_id}")
def delete_user_alert(alert_id: str, store: MemoryStorage = Depends(get_storage)):
    try:
        store.delete_user_alert(alert_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return {"success": True}

@app.get("/users/{user_id}/alerts/triggered", response_model=List[TriggeredAlert])
async def get_triggered_alerts(
    user_id: str,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    store: MemoryStorage = Depends(get_storage)
):
    """
    Evaluate enabled alerts against current conditions
    Alerts tied to a saved location use that location's coordinates
    """
    results: Dict[Tuple[float, float], AQIResult] = {}
    triggered = []

    for alert in store.get_user_alerts(user_id):
        if not alert.enabled:
            continue

        coords = (lat, lon)
        if alert.location_id is not None:
            saved = store.get_user_location(alert.location_id)
            coords = (saved.latitude, saved.longitude)

        if coords not in results:
            reading, _ = await _current_reading(*coords)
            results[coords] = AQICalculator.compute_aqi(reading)
        result = results[coords]

        value = result.index if alert.pollutant == "aqi" else result.sub_indices.get(alert.pollutant)
        if value is not None and value >= alert.threshold:
            triggered.append(TriggeredAlert(alert=alert, value=value))

    logger.info(f"{len(triggered)} alerts triggered for user {user_id}")
    return triggered

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": _utc_now(),
        "version": settings.VERSION
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
