"""Tests for the Open-Meteo and NASA FIRMS clients using a mocked transport."""

import asyncio

import httpx
import numpy as np

from config import settings
from Data_sources.nasa_firms import fetch_fire_detections, parse_firms_csv
from Data_sources.open_meteo import (
    build_forecast_dataset,
    fetch_air_quality_forecast,
    fetch_current_air_quality,
    search_locations,
)

FIRMS_CSV = (
    "latitude,longitude,bright_ti4,scan,track,acq_date,acq_time,satellite,instrument,confidence,version,bright_ti5,frp,daynight\n"
    "28.61,77.20,330.5,0.39,0.36,2026-10-18,0812,N20,VIIRS,n,2.0NRT,290.1,5.4,D\n"
    "28.70,77.10,341.2,0.41,0.37,2026-10-18,0812,N20,VIIRS,h,2.0NRT,291.4,,D\n"
    "not-a-number,77.10,341.2,0.41,0.37,2026-10-18,0812,N20,VIIRS,h,2.0NRT,291.4,3.0,D\n"
)


def _run(call, handler):
    """Run an async client function against a MockTransport handler."""

    async def runner():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await call(client)

    return asyncio.run(runner())


class TestCurrentAirQuality:
    def test_parses_current_block(self):
        def handler(request):
            assert request.url.params["latitude"] == "28.6"
            assert "pm2_5" in request.url.params["current"]
            return httpx.Response(200, json={
                "current": {
                    "time": "2026-10-19T10:00",
                    "pm2_5": 35.6,
                    "pm10": 58.2,
                    "nitrogen_dioxide": 42.1,
                    "ozone": 68.5,
                    "sulphur_dioxide": 7.0,
                    "carbon_monoxide": 310.0,
                }
            })

        reading = _run(lambda c: fetch_current_air_quality(28.6, 77.2, client=c), handler)
        assert reading.pm25 == 35.6
        assert reading.no2 == 42.1
        assert reading.o3 == 68.5
        assert reading.so2 == 7.0
        assert reading.co == 310.0

    def test_null_values_are_absent(self):
        def handler(request):
            return httpx.Response(200, json={"current": {"pm2_5": None, "pm10": 20.0}})

        reading = _run(lambda c: fetch_current_air_quality(0, 0, client=c), handler)
        assert reading.pm25 is None
        assert reading.pm10 == 20.0

    def test_missing_current_block(self):
        def handler(request):
            return httpx.Response(200, json={"latitude": 0})

        assert _run(lambda c: fetch_current_air_quality(0, 0, client=c), handler) is None

    def test_http_error_returns_none(self):
        def handler(request):
            return httpx.Response(500, text="upstream down")

        assert _run(lambda c: fetch_current_air_quality(0, 0, client=c), handler) is None

    def test_connection_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert _run(lambda c: fetch_current_air_quality(0, 0, client=c), handler) is None


class TestForecast:
    def test_builds_dataset(self):
        def handler(request):
            assert request.url.params["forecast_days"] == "2"
            return httpx.Response(200, json={
                "hourly": {
                    "time": ["2026-10-19T00:00", "2026-10-19T01:00"],
                    "pm2_5": [35.6, None],
                    "pm10": [58.2, 60.0],
                    "nitrogen_dioxide": [42.1, 40.0],
                    "ozone": [68.5, 70.0],
                }
            })

        ds = _run(lambda c: fetch_air_quality_forecast(28.6, 77.2, days=2, client=c), handler)
        assert ds.sizes["time"] == 2
        assert set(ds.data_vars) == {"pm25", "pm10", "no2", "o3"}
        assert np.isnan(ds["pm25"].values[1])
        assert ds["o3"].values[0] == 68.5

    def test_missing_hourly(self):
        def handler(request):
            return httpx.Response(200, json={})

        assert _run(lambda c: fetch_air_quality_forecast(0, 0, client=c), handler) is None

    def test_http_error(self):
        def handler(request):
            return httpx.Response(429)

        assert _run(lambda c: fetch_air_quality_forecast(0, 0, client=c), handler) is None

    def test_missing_variable_filled_with_nan(self):
        ds = build_forecast_dataset({"time": ["2026-10-19T00:00"], "pm10": [12.0]})
        assert np.isnan(ds["no2"].values[0])
        assert ds["pm10"].attrs["units"] == "µg/m³"


class TestGeocoding:
    def test_results(self):
        def handler(request):
            assert request.url.params["name"] == "Delhi"
            return httpx.Response(200, json={
                "results": [
                    {"id": 1, "name": "Delhi", "latitude": 28.65, "longitude": 77.23,
                     "country": "India", "admin1": "Delhi"},
                ]
            })

        results = _run(lambda c: search_locations("Delhi", client=c), handler)
        assert len(results) == 1
        assert results[0].name == "Delhi"
        assert results[0].country == "India"

    def test_no_results(self):
        def handler(request):
            return httpx.Response(200, json={"generationtime_ms": 0.2})

        assert _run(lambda c: search_locations("Nowhere", client=c), handler) == []

    def test_error(self):
        def handler(request):
            return httpx.Response(503)

        assert _run(lambda c: search_locations("Delhi", client=c), handler) == []


class TestNasaFirms:
    def test_parse_csv(self):
        fires = parse_firms_csv(FIRMS_CSV)
        assert len(fires) == 2
        assert fires[0].latitude == 28.61
        assert fires[0].confidence == "n"
        assert fires[0].frp == 5.4
        assert fires[1].frp is None

    def test_parse_error_text(self):
        assert parse_firms_csv("Invalid MAP_KEY.") == []

    def test_without_map_key(self, monkeypatch):
        monkeypatch.setattr(settings, "NASA_FIRMS_MAP_KEY", "")

        def handler(request):
            raise AssertionError("no request expected")

        assert _run(lambda c: fetch_fire_detections(28.0, 77.0, client=c), handler) == []

    def test_fetch(self, monkeypatch):
        monkeypatch.setattr(settings, "NASA_FIRMS_MAP_KEY", "abc123")

        def handler(request):
            assert request.url.path.endswith("/abc123/VIIRS_NOAA20_NRT/76.0,27.0,78.0,29.0/2")
            return httpx.Response(200, text=FIRMS_CSV)

        fires = _run(lambda c: fetch_fire_detections(28.0, 77.0, days=2, client=c), handler)
        assert len(fires) == 2

    def test_fetch_error(self, monkeypatch):
        monkeypatch.setattr(settings, "NASA_FIRMS_MAP_KEY", "abc123")

        def handler(request):
            return httpx.Response(500)

        assert _run(lambda c: fetch_fire_detections(28.0, 77.0, client=c), handler) == []
