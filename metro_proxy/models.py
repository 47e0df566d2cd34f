# Upstream record shapes and the immutable snapshots built from them.

from dataclasses import dataclass
from typing import List, Optional, Tuple, TypedDict


class Station(TypedDict, total=False):
    Name: str
    Code: str


class Address(TypedDict, total=False):
    City: str
    State: str
    Street: str
    Zip: str


class StationDetail(TypedDict, total=False):
    Address: Address
    Code: str
    Lat: float
    Lon: float
    LineCode1: Optional[str]
    LineCode2: Optional[str]
    LineCode3: Optional[str]
    LineCode4: Optional[str]
    Name: str
    StationTogether1: str
    StationTogether2: str


class Entrance(TypedDict, total=False):
    Description: str
    ID: str
    Lat: float
    Lon: float
    Name: str
    StationCode1: str
    StationCode2: str


class LineInfo(TypedDict, total=False):
    DisplayName: str
    EndStationCode: str
    InternalDestination1: str
    InternalDestination2: str
    LineCode: str
    StartStationCode: str


class AllDayParking(TypedDict, total=False):
    TotalCount: int
    RiderCost: Optional[float]
    NonRiderCost: Optional[float]


class ShortTermParking(TypedDict, total=False):
    SaturdayRiderCost: Optional[float]
    SaturdayNonRiderCost: Optional[float]
    TotalCount: int
    Notes: Optional[str]


class StationParking(TypedDict, total=False):
    Code: str
    Notes: Optional[str]
    AllDayParking: AllDayParking
    ShortTermParking: ShortTermParking


class TrainPrediction(TypedDict, total=False):
    Car: Optional[str]
    Destination: str
    DestinationCode: Optional[str]
    DestinationName: str
    Group: str
    Line: str
    LocationCode: str
    LocationName: str
    Min: str


@dataclass(frozen=True)
class StaticSnapshot:
    stations: Tuple[StationDetail, ...]
    entrances: Tuple[Entrance, ...]
    lines: Tuple[LineInfo, ...]
    parking: Tuple[StationParking, ...]
    captured_at: float

    def is_empty(self) -> bool:
        return not self.stations


@dataclass(frozen=True)
class PredictionSnapshot:
    predictions: Tuple[TrainPrediction, ...]
    captured_at: float

    def is_empty(self) -> bool:
        return not self.predictions


def station_codes(detail: StationDetail) -> List[str]:
    """Own code first, then any connected platforms (e.g. Metro Center A01/C01)."""
    codes = (
        detail.get("Code"),
        detail.get("StationTogether1"),
        detail.get("StationTogether2"),
    )
    return [code for code in codes if code]


# BRD and ARR sort ahead of any minute count; "---" and blanks sort last.
_SENTINEL_ORDER = {"BRD": -2, "ARR": -1}
_UNKNOWN_ORDER = 10_000


def prediction_sort_key(prediction: TrainPrediction) -> int:
    minutes = (prediction.get("Min") or "").strip().upper()
    if minutes in _SENTINEL_ORDER:
        return _SENTINEL_ORDER[minutes]
    if minutes.isdigit():
        return int(minutes)
    return _UNKNOWN_ORDER
