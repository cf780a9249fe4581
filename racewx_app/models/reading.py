"""
Reading data models for the race weather API
"""
from pydantic import BaseModel
from typing import Dict, Any, Optional, List


class LiveInputs(BaseModel):
    """Raw readings pulled from the station payload"""
    temp_f: float
    humidity_pct: float
    abs_pressure_inhg: float
    uv_index: Optional[float] = None


class DisplayReading(BaseModel):
    """Rounded derived values as shown on the dashboard"""
    ts: str
    temp_f: float
    humidity_pct: float
    abs_pressure_inhg: float
    vapor_pressure_inhg: float
    dew_point_f: float
    humidity_grains: float
    adr: float
    density_alt_ft: int
    correction: float
    uv_index: Optional[float] = None


class LiveResponse(BaseModel):
    inputs: LiveInputs
    display: DisplayReading


class HistoryResponse(BaseModel):
    count: int
    readings: List[LiveResponse]


class ClearHistoryResponse(BaseModel):
    deleted: int


class StatusInfo(BaseModel):
    """Freshness of the newest stored reading"""
    state: str
    last_ts: Optional[str] = None
    age_seconds: Optional[float] = None
    age_text: str


class EnvCheck(BaseModel):
    has_api_key: bool
    api_key_length: int
    has_api_secret: bool
    api_secret_length: int
    has_station_id: bool
    station_id: Optional[str] = None


class StationInfo(BaseModel):
    station_name: Optional[str] = None
    station_id: Optional[Any] = None
    station_id_uuid: Optional[str] = None


class StationsResponse(BaseModel):
    stations: List[StationInfo]


class SensorSummary(BaseModel):
    sensor_type: Optional[Any] = None
    data_structure_type: Optional[Any] = None
    record_keys: List[List[str]]
    record_sample: List[Dict[str, Any]]


class PeekResponse(BaseModel):
    sensor_count: int
    summary: List[SensorSummary]


class ReferenceCalculationResponse(BaseModel):
    message: str
    result: Dict[str, float]
