from enum import Enum
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional
import datetime as dt


class Pollutant(str, Enum):
    PM25 = "pm25"
    PM10 = "pm10"
    NO2 = "no2"
    O3 = "o3"


AlertTarget = Literal["aqi", "pm25", "pm10", "no2", "o3"]


# ==================== AQI Models ====================
class PollutantReading(BaseModel):
    """Concentrations in µg/m³; None or <= 0 means not measured"""
    model_config = ConfigDict(frozen=True)

    pm25: Optional[float] = Field(None, validation_alias=AliasChoices("pm25", "pm2_5"))
    pm10: Optional[float] = None
    no2: Optional[float] = Field(None, validation_alias=AliasChoices("no2", "nitrogen_dioxide"))
    o3: Optional[float] = Field(None, validation_alias=AliasChoices("o3", "ozone"))
    # Display only, not part of the index
    so2: Optional[float] = Field(None, validation_alias=AliasChoices("so2", "sulphur_dioxide"))
    co: Optional[float] = Field(None, validation_alias=AliasChoices("co", "carbon_monoxide"))

class AQIResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    category: str
    color: str
    health_implications: str
    advisory: List[str]
    dominant_pollutant: Optional[str] = None
    sub_indices: Dict[str, int] = {}
    data_available: bool = True

class SubIndexResponse(BaseModel):
    pollutant: Pollutant
    concentration: float
    sub_index: int
    category: str
    color: str


# ==================== API Models ====================
class Location(BaseModel):
    latitude: float
    longitude: float
    name: Optional[str] = None

class CurrentAQIResponse(BaseModel):
    aqi: AQIResult
    pollutants: PollutantReading
    source: str  # open-meteo | fallback
    location: Location
    timestamp: str

class ForecastHour(BaseModel):
    time: str
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    no2: Optional[float] = None
    o3: Optional[float] = None
    aqi: int
    category: str
    dominant_pollutant: Optional[str] = None

class ForecastResponse(BaseModel):
    location: Location
    hourly: List[ForecastHour]
    peak_aqi: int
    mean_aqi: float
    source: str

class GeocodingResult(BaseModel):
    name: str
    latitude: float
    longitude: float
    country: Optional[str] = None
    admin1: Optional[str] = None

class FireDetection(BaseModel):
    latitude: float
    longitude: float
    confidence: Optional[str] = None
    acq_date: Optional[str] = None
    acq_time: Optional[str] = None
    frp: Optional[float] = None  # fire radiative power, MW


# ==================== User Models ====================
class UserLocationCreate(BaseModel):
    location_name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

class UserLocation(UserLocationCreate):
    id: str
    user_id: str
    created_at: dt.datetime

class UserAlertCreate(BaseModel):
    location_id: Optional[str] = None
    pollutant: AlertTarget
    threshold: int = Field(..., ge=0, le=500)
    enabled: bool = True

class UserAlertUpdate(BaseModel):
    enabled: bool

class UserAlert(UserAlertCreate):
    id: str
    user_id: str
    created_at: dt.datetime

class TriggeredAlert(BaseModel):
    alert: UserAlert
    value: int  # current AQI or sub-index of the alert's pollutant
