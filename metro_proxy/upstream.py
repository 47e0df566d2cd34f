"""WMATA HTTP client.

Every call is a single GET with the API key in the ``api_key`` header.
Callers own retry policy; this layer never retries.
"""

import json
from typing import Any, Dict, List, Optional, Tuple, cast

import requests

from .errors import MissingConfig, ParseError, TransportError, UpstreamError
from .models import Entrance, LineInfo, Station, StationDetail, StationParking, TrainPrediction

STATIONS_PATH = "/Rail.svc/json/jStations"
STATION_INFO_PATH = "/Rail.svc/json/jStationInfo"
ENTRANCES_PATH = "/Rail.svc/json/jStationEntrances"
LINES_PATH = "/Rail.svc/json/jLines"
PARKING_PATH = "/Rail.svc/json/jStationParking"
PREDICTIONS_PATH = "/StationPrediction.svc/json/GetPrediction/All"


class WmataClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.wmata.com",
        timeout: Optional[Tuple[float, float]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise MissingConfig("WMATA_API_KEY not set")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def fetch(self, url: str, params: Optional[Dict[str, str]] = None) -> bytes:
        try:
            # The context manager hands the connection back to the pool on
            # every exit path, including the non-2xx raise below.
            with self.session.get(
                url,
                params=params,
                timeout=self.timeout,
                headers={"api_key": self._api_key, "Accept": "application/json"},
                stream=True,
            ) as resp:
                if not 200 <= resp.status_code < 300:
                    raise UpstreamError(resp.status_code, f"WMATA returned status {resp.status_code}")
                return resp.content
        except requests.RequestException as exc:
            raise TransportError(f"WMATA request failed: {type(exc).__name__}") from exc

    def fetch_json(
        self, path: str, key: Optional[str], params: Optional[Dict[str, str]] = None
    ) -> Any:
        """Fetch ``path`` and unwrap its top-level ``key`` list.

        With ``key=None`` the decoded object itself is returned; it must be a
        JSON object.
        """
        body = self.fetch(f"{self.base_url}{path}", params)
        try:
            data = json.loads(body)
        except ValueError as exc:
            raise ParseError(f"{path}: invalid JSON") from exc

        if not isinstance(data, dict):
            raise ParseError(f"{path}: expected a JSON object")
        if key is None:
            return data
        if key not in data:
            raise ParseError(f"{path}: missing {key!r}")
        items = data[key]
        if items is None:
            return []
        if not isinstance(items, list):
            raise ParseError(f"{path}: {key!r} is not a list")
        return items

    def station_list(self) -> List[Station]:
        return cast(List[Station], self.fetch_json(STATIONS_PATH, "Stations"))

    def station_detail(self, code: str) -> StationDetail:
        return cast(
            StationDetail,
            self.fetch_json(STATION_INFO_PATH, None, params={"StationCode": code}),
        )

    def entrances(self) -> List[Entrance]:
        return cast(List[Entrance], self.fetch_json(ENTRANCES_PATH, "Entrances"))

    def lines(self) -> List[LineInfo]:
        return cast(List[LineInfo], self.fetch_json(LINES_PATH, "Lines"))

    def parking(self) -> List[StationParking]:
        return cast(List[StationParking], self.fetch_json(PARKING_PATH, "StationsParking"))

    def predictions(self) -> List[TrainPrediction]:
        return cast(List[TrainPrediction], self.fetch_json(PREDICTIONS_PATH, "Trains"))
