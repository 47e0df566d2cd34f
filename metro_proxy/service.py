from typing import Any, Dict, List, Optional, Tuple, Union

from .cache import PredictionCache, StaticDataCache
from .errors import NotFound
from .models import (
    Entrance,
    LineInfo,
    StationDetail,
    StationParking,
    TrainPrediction,
    prediction_sort_key,
    station_codes,
)


class TransitData:
    """Read operations the HTTP layer calls; each serves from cache."""

    def __init__(self, static: StaticDataCache, predictions: PredictionCache) -> None:
        self.static = static
        self.predictions = predictions

    def get_stations(self) -> Tuple[StationDetail, ...]:
        return self.static.get().stations

    def get_entrances(self, station_code: str) -> List[Entrance]:
        return [
            entrance
            for entrance in self.static.get().entrances
            if entrance.get("StationCode1") == station_code
            or entrance.get("StationCode2") == station_code
        ]

    def get_lines(self) -> Tuple[LineInfo, ...]:
        return self.static.get().lines

    def get_parking(
        self, station_code: Optional[str] = None
    ) -> Union[StationParking, Tuple[StationParking, ...]]:
        parking = self.static.get().parking
        if station_code is None:
            return parking
        for record in parking:
            if record.get("Code") == station_code:
                return record
        raise NotFound(f"No parking info for station {station_code}")

    def get_predictions(self, station_code: Optional[str] = None) -> List[TrainPrediction]:
        """All predictions, or one station's sorted by arrival.

        A station code also matches its connected platforms, so asking for
        A01 (Metro Center, Red) includes trains at C01 (Metro Center, lower
        level).
        """
        predictions = self.predictions.get().predictions
        if station_code is None:
            return list(predictions)
        codes = set(self._platform_codes(station_code))
        matching = [p for p in predictions if p.get("LocationCode") in codes]
        return sorted(matching, key=prediction_sort_key)

    def _platform_codes(self, station_code: str) -> List[str]:
        snapshot = self.static.peek()
        if snapshot is not None:
            for detail in snapshot.stations:
                if station_code in station_codes(detail):
                    return station_codes(detail)
        return [station_code]

    def status(self) -> Dict[str, Any]:
        static = self.static.peek()
        predictions = self.predictions.peek()
        return {
            "static": {
                "age_sec": self.static.age(),
                "stations": len(static.stations) if static else 0,
                "entrances": len(static.entrances) if static else 0,
                "lines": len(static.lines) if static else 0,
                "parking": len(static.parking) if static else 0,
            },
            "predictions": {
                "age_sec": self.predictions.age(),
                "trains": len(predictions.predictions) if predictions else 0,
            },
        }
