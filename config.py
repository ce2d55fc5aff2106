import os
from typing import List

class Settings:
    # Environment
    ENV: str = os.getenv("ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    VERSION: str = "1.0.0"

    # Server Settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # CORS Settings
    ALLOWED_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()
    ]

    # Upstream data providers
    OPEN_METEO_AIR_QUALITY_URL: str = os.getenv(
        "OPEN_METEO_AIR_QUALITY_URL",
        "https://air-quality-api.open-meteo.com/v1/air-quality",
    )
    OPEN_METEO_GEOCODING_URL: str = os.getenv(
        "OPEN_METEO_GEOCODING_URL",
        "https://geocoding-api.open-meteo.com/v1/search",
    )
    NASA_FIRMS_URL: str = os.getenv(
        "NASA_FIRMS_URL",
        "https://firms.modaps.eosdis.nasa.gov/api/area/csv",
    )
    NASA_FIRMS_MAP_KEY: str = os.getenv("NASA_FIRMS_MAP_KEY", "")
    NASA_FIRMS_SOURCE: str = os.getenv("NASA_FIRMS_SOURCE", "VIIRS_NOAA20_NRT")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "10"))

# Create settings instance
settings = Settings()
