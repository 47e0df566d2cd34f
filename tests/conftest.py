import threading
from typing import Any, Dict, List

import pytest

from metro_proxy.cache import PredictionCache, StaticDataCache
from metro_proxy.service import TransitData


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def station_detail(code: str, name: str, together: str = "", *lines: str) -> Dict[str, Any]:
    slots = list(lines) + [""] * (4 - len(lines))
    return {
        "Code": code,
        "Name": name,
        "Lat": 38.898303,
        "Lon": -77.028099,
        "LineCode1": slots[0],
        "LineCode2": slots[1] or None,
        "LineCode3": slots[2] or None,
        "LineCode4": slots[3] or None,
        "StationTogether1": together,
        "StationTogether2": "",
        "Address": {"City": "Washington", "State": "DC", "Street": "607 13th St. NW", "Zip": "20005"},
    }


class FakeClient:
    """Stands in for WmataClient; records calls and raises on demand."""

    def __init__(self) -> None:
        self.directory: List[Dict[str, Any]] = [
            {"Name": "Metro Center", "Code": "A01"},
            {"Name": "Farragut North", "Code": "A02"},
            {"Name": "Metro Center", "Code": "C01"},
        ]
        self.details: Dict[str, Dict[str, Any]] = {
            "A01": station_detail("A01", "Metro Center", "C01", "RD"),
            "A02": station_detail("A02", "Farragut North", "", "RD"),
            "C01": station_detail("C01", "Metro Center", "A01", "BL", "OR", "SV"),
        }
        self.entrance_data: List[Dict[str, Any]] = [
            {"ID": "1", "Name": "12th & G", "StationCode1": "A01", "StationCode2": ""},
            {"ID": "2", "Name": "11th & G", "StationCode1": "C01", "StationCode2": "A01"},
            {"ID": "3", "Name": "K St", "StationCode1": "A02", "StationCode2": ""},
        ]
        self.line_data: List[Dict[str, Any]] = [
            {"LineCode": "RD", "DisplayName": "Red", "StartStationCode": "A15", "EndStationCode": "B11"},
            {"LineCode": "BL", "DisplayName": "Blue", "StartStationCode": "J03", "EndStationCode": "G05"},
        ]
        self.parking_data: List[Dict[str, Any]] = [
            {
                "Code": "A02",
                "Notes": None,
                "AllDayParking": {"TotalCount": 0, "RiderCost": None, "NonRiderCost": None},
                "ShortTermParking": {"TotalCount": 0, "Notes": None},
            },
        ]
        self.prediction_data: List[Dict[str, Any]] = [
            {"LocationCode": "A01", "Line": "RD", "Destination": "Shady Grv", "Min": "5"},
            {"LocationCode": "C01", "Line": "BL", "Destination": "Franconia", "Min": "ARR"},
            {"LocationCode": "A02", "Line": "RD", "Destination": "Glenmont", "Min": "2"},
            {"LocationCode": "A01", "Line": "RD", "Destination": "Glenmont", "Min": "BRD"},
            {"LocationCode": "A01", "Line": "--", "Destination": "No Passenger", "Min": "---"},
        ]
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def _call(self, name: str) -> None:
        with self._lock:
            self.calls.append(name)
        exc = self.failures.get(name)
        if exc is not None:
            raise exc

    def close(self) -> None:
        self.closed = True

    def count(self, name: str) -> int:
        with self._lock:
            return self.calls.count(name)

    def station_list(self) -> List[Dict[str, Any]]:
        self._call("stations")
        return list(self.directory)

    def station_detail(self, code: str) -> Dict[str, Any]:
        self._call(f"detail:{code}")
        return dict(self.details[code])

    def entrances(self) -> List[Dict[str, Any]]:
        self._call("entrances")
        return list(self.entrance_data)

    def lines(self) -> List[Dict[str, Any]]:
        self._call("lines")
        return list(self.line_data)

    def parking(self) -> List[Dict[str, Any]]:
        self._call("parking")
        return list(self.parking_data)

    def predictions(self) -> List[Dict[str, Any]]:
        self._call("predictions")
        return list(self.prediction_data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def static_cache(client, clock) -> StaticDataCache:
    return StaticDataCache(client, clock=clock)  # type: ignore[arg-type]


@pytest.fixture
def prediction_cache(client, clock) -> PredictionCache:
    return PredictionCache(client, clock=clock)  # type: ignore[arg-type]


@pytest.fixture
def transit_data(static_cache, prediction_cache) -> TransitData:
    return TransitData(static_cache, prediction_cache)
