import csv
import io
import logging
from typing import List, Optional

import httpx

from config import settings
from Models.models import FireDetection

logger = logging.getLogger(__name__)


def parse_firms_csv(text: str) -> List[FireDetection]:
    """
    Parse a FIRMS area CSV export
    Rows without usable coordinates are skipped
    """
    fires = []
    for row in csv.DictReader(io.StringIO(text)):
        try:
            latitude = float(row["latitude"])
            longitude = float(row["longitude"])
            frp = float(row["frp"]) if row.get("frp") else None
        except (KeyError, TypeError, ValueError):
            continue

        fires.append(FireDetection(
            latitude=latitude,
            longitude=longitude,
            confidence=row.get("confidence") or None,
            acq_date=row.get("acq_date") or None,
            acq_time=row.get("acq_time") or None,
            frp=frp,
        ))
    return fires


async def fetch_fire_detections(
    lat: float,
    lon: float,
    days: int = 1,
    buffer: float = 1.0,
    client: Optional[httpx.AsyncClient] = None,
) -> List[FireDetection]:
    """
    Fetch active fire detections around a location from NASA FIRMS
    Needs NASA_FIRMS_MAP_KEY; returns an empty list without it or on error
    """
    if not settings.NASA_FIRMS_MAP_KEY:
        logger.warning("NASA_FIRMS_MAP_KEY is not set, skipping fire detections")
        return []

    # Bounding box around point: west,south,east,north
    area = f"{lon - buffer},{lat - buffer},{lon + buffer},{lat + buffer}"
    url = f"{settings.NASA_FIRMS_URL}/{settings.NASA_FIRMS_MAP_KEY}/{settings.NASA_FIRMS_SOURCE}/{area}/{days}"

    try:
        if client is not None:
            response = await client.get(url, timeout=settings.HTTP_TIMEOUT)
        else:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as own_client:
                response = await own_client.get(url)
        response.raise_for_status()
        return parse_firms_csv(response.text)
    except httpx.HTTPError as e:
        logger.error(f"NASA FIRMS API error: {str(e)}")
        return []
