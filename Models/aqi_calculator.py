import math
from typing import Dict, NamedTuple, Optional, Tuple

import numpy as np
import xarray as xr

from Models.models import AQIResult, Pollutant, PollutantReading


MAX_AQI = 500


class Breakpoint(NamedTuple):
    concentration_low: float
    concentration_high: float
    index_low: int
    index_high: int


class CategoryBand(NamedTuple):
    index_high: int
    category: str
    color: str
    health_implications: str
    advisory: Tuple[str, ...]


# ==================== CPCB Breakpoints (µg/m³) ====================
PM25_BREAKPOINTS = (
    Breakpoint(0, 30, 0, 50),
    Breakpoint(31, 60, 51, 100),
    Breakpoint(61, 90, 101, 200),
    Breakpoint(91, 120, 201, 300),
    Breakpoint(121, 250, 301, 400),
    Breakpoint(251, 350, 401, 500),
)

PM10_BREAKPOINTS = (
    Breakpoint(0, 50, 0, 50),
    Breakpoint(51, 100, 51, 100),
    Breakpoint(101, 250, 101, 200),
    Breakpoint(251, 350, 201, 300),
    Breakpoint(351, 430, 301, 400),
    Breakpoint(431, 500, 401, 500),
)

NO2_BREAKPOINTS = (
    Breakpoint(0, 40, 0, 50),
    Breakpoint(41, 80, 51, 100),
    Breakpoint(81, 180, 101, 200),
    Breakpoint(181, 280, 201, 300),
    Breakpoint(281, 400, 301, 400),
    Breakpoint(401, 1000, 401, 500),
)

O3_BREAKPOINTS = (
    Breakpoint(0, 50, 0, 50),
    Breakpoint(51, 100, 51, 100),
    Breakpoint(101, 168, 101, 200),
    Breakpoint(169, 208, 201, 300),
    Breakpoint(209, 748, 301, 400),
    Breakpoint(749, 1000, 401, 500),
)

# Iteration order doubles as the tie-break order for the dominant pollutant
BREAKPOINT_TABLES: Dict[Pollutant, Tuple[Breakpoint, ...]] = {
    Pollutant.PM25: PM25_BREAKPOINTS,
    Pollutant.PM10: PM10_BREAKPOINTS,
    Pollutant.NO2: NO2_BREAKPOINTS,
    Pollutant.O3: O3_BREAKPOINTS,
}
POLLUTANT_ORDER = tuple(BREAKPOINT_TABLES)

# ==================== CPCB Categories ====================
CATEGORY_BANDS = (
    CategoryBand(
        50, "Good", "#00E400",
        "Minimal impact. Air quality is satisfactory.",
        (
            "Enjoy outdoor activities",
            "Air quality is ideal for outdoor exercise",
        ),
    ),
    CategoryBand(
        100, "Satisfactory", "#FFFF00",
        "Minor breathing discomfort to sensitive people.",
        (
            "Sensitive individuals should limit prolonged outdoor exertion",
            "General public can carry on normal activities",
        ),
    ),
    CategoryBand(
        200, "Moderate", "#FF7E00",
        "Breathing discomfort to people with lung, heart disease.",
        (
            "People with lung disease, children and elderly should limit prolonged outdoor activities",
            "General public should reduce prolonged or heavy exertion",
        ),
    ),
    CategoryBand(
        300, "Poor", "#FF0000",
        "Breathing discomfort to most people on prolonged exposure.",
        (
            "People with lung disease, children and elderly should avoid outdoor activities",
            "General public should minimize outdoor exertion",
            "Consider wearing N95 masks outdoors",
        ),
    ),
    CategoryBand(
        400, "Very Poor", "#99004C",
        "Respiratory illness on prolonged exposure.",
        (
            "Everyone should avoid all outdoor physical activities",
            "People with lung/heart disease should remain indoors",
            "Wear N95 masks if you must go out",
            "Use air purifiers indoors",
        ),
    ),
    CategoryBand(
        MAX_AQI, "Severe", "#7E0023",
        "Affects healthy people and seriously impacts those with existing diseases.",
        (
            "Emergency conditions. Everyone should avoid outdoor activities",
            "Remain indoors and keep windows/doors closed",
            "Run air purifiers continuously",
            "Seek medical help if experiencing breathing difficulties",
        ),
    ),
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_measured(concentration: Optional[float]) -> bool:
    return concentration is not None and not math.isnan(concentration) and concentration > 0


# ==================== AQI Calculator ====================
class AQICalculator:
    """Calculate the Indian National AQI (CPCB)"""

    @staticmethod
    def calculate_sub_index(concentration, breakpoints):
        """
        Map one concentration onto its breakpoint table
        Formula: I = [(I_high - I_low) / (C_high - C_low)] * (C - C_low) + I_low
        """
        if math.isnan(concentration) or concentration < 0:
            return 0

        for position, bp in enumerate(breakpoints):
            if concentration < bp.concentration_low:
                # Fractional value between two integer tiers stays in the lower one
                return breakpoints[position - 1].index_high if position else bp.index_low
            if concentration <= bp.concentration_high:
                slope = (bp.index_high - bp.index_low) / (bp.concentration_high - bp.concentration_low)
                return _round_half_up(slope * (concentration - bp.concentration_low) + bp.index_low)

        # Beyond the table: clamp, never extrapolate
        return MAX_AQI

    @classmethod
    def sub_index(cls, concentration, pollutant):
        """Sub-index for a single pollutant, e.g. sub_index(45.0, "pm25")"""
        return cls.calculate_sub_index(concentration, BREAKPOINT_TABLES[Pollutant(pollutant)])

    @classmethod
    def sub_index_array(cls, values, pollutant) -> np.ndarray:
        """Element-wise sub-index; NaN stays NaN"""
        values = np.asarray(values, dtype=float)
        breakpoints = BREAKPOINT_TABLES[Pollutant(pollutant)]
        result = np.full(values.shape, np.nan)
        valid = ~np.isnan(values)
        result[valid] = [cls.calculate_sub_index(v, breakpoints) for v in values[valid]]
        return result

    @classmethod
    def add_aqi_to_dataset(cls, ds: xr.Dataset) -> xr.Dataset:
        """
        Attach `<pollutant>_sub_index`, `aqi` and `dominant_index` variables
        `dominant_index` points into POLLUTANT_ORDER, -1 where nothing was measured
        """
        ds = ds.copy()
        stacked = []
        for pollutant in POLLUTANT_ORDER:
            if pollutant.value not in ds:
                stacked.append(np.full(ds.sizes["time"], np.nan))
                continue
            values = ds[pollutant.value].values.astype(float)
            # Non-positive readings count as not measured
            values = np.where(values > 0, values, np.nan)
            sub = cls.sub_index_array(values, pollutant)
            ds[f"{pollutant.value}_sub_index"] = (("time",), sub)
            stacked.append(sub)

        filled = np.nan_to_num(np.stack(stacked), nan=-1.0)
        measured = filled.max(axis=0) >= 0
        ds["aqi"] = (("time",), np.where(measured, filled.max(axis=0), 0).astype(int))
        ds["dominant_index"] = (("time",), np.where(measured, filled.argmax(axis=0), -1))
        return ds

    @classmethod
    def get_sub_indices(cls, reading: PollutantReading) -> Dict[str, int]:
        """Sub-indices of every measured index pollutant, in table order"""
        sub_indices = {}
        for pollutant, breakpoints in BREAKPOINT_TABLES.items():
            concentration = getattr(reading, pollutant.value)
            if _is_measured(concentration):
                sub_indices[pollutant.value] = cls.calculate_sub_index(concentration, breakpoints)
        return sub_indices

    @classmethod
    def get_combined_aqi(cls, reading: PollutantReading):
        """
        Get combined AQI - the MAXIMUM (worst) pollutant sub-index
        Returns (aqi, dominant_pollutant, sub_indices); (0, None, {}) when nothing was measured
        """
        sub_indices = cls.get_sub_indices(reading)
        if len(sub_indices) == 0:
            return 0, None, sub_indices

        dominant = max(sub_indices, key=sub_indices.get)
        return sub_indices[dominant], dominant, sub_indices

    @staticmethod
    def aqi_to_category(aqi) -> CategoryBand:
        """Resolve an index to its CPCB band; below 0 is Good, above 500 is Severe"""
        for band in CATEGORY_BANDS:
            if aqi <= band.index_high:
                return band
        return CATEGORY_BANDS[-1]

    @classmethod
    def compute_aqi(cls, reading: PollutantReading) -> AQIResult:
        aqi, dominant, sub_indices = cls.get_combined_aqi(reading)
        band = cls.aqi_to_category(aqi)
        return AQIResult(
            index=aqi,
            category=band.category,
            color=band.color,
            health_implications=band.health_implications,
            advisory=list(band.advisory),
            dominant_pollutant=dominant,
            sub_indices=sub_indices,
            data_available=dominant is not None,
        )


def compute_aqi(reading: PollutantReading) -> AQIResult:
    return AQICalculator.compute_aqi(reading)


def sub_index(concentration: float, pollutant) -> int:
    return AQICalculator.sub_index(concentration, pollutant)
