# Two-tier snapshot cache in front of WMATA.
#
# Each tier owns one immutable snapshot behind a reader/writer lock. Readers
# take the shared lock only long enough to check freshness. A refresh holds
# the exclusive lock for its whole body, so at most one refresh per tier is
# ever in flight; callers that queued behind it hit the collapse window on
# re-check and return the snapshot it just published.

import logging
import time
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from .errors import ProxyError
from .models import PredictionSnapshot, StaticSnapshot, StationDetail
from .rwlock import ReadWriteLock
from .upstream import WmataClient

log = logging.getLogger(__name__)

Clock = Callable[[], float]
SnapshotT = TypeVar("SnapshotT", bound=Union[StaticSnapshot, PredictionSnapshot])
ItemT = TypeVar("ItemT")


class SnapshotCache(Generic[SnapshotT]):
    name = "cache"

    def __init__(self, *, ttl_sec: float, collapse_sec: float, clock: Clock = time.time) -> None:
        self.ttl_sec = ttl_sec
        self.collapse_sec = collapse_sec
        self._clock = clock
        self._lock = ReadWriteLock()
        self._snapshot: Optional[SnapshotT] = None

    def _is_fresh(self, snapshot: Optional[SnapshotT], window: float) -> bool:
        if snapshot is None or snapshot.is_empty():
            return False
        return self._clock() - snapshot.captured_at < window

    def peek(self) -> Optional[SnapshotT]:
        """Current snapshot, never triggering a refresh."""
        with self._lock.read_locked():
            return self._snapshot

    def age(self) -> Optional[float]:
        snapshot = self.peek()
        if snapshot is None:
            return None
        return max(0.0, self._clock() - snapshot.captured_at)

    def remaining_ttl(self) -> int:
        age = self.age()
        if age is None:
            return 0
        return max(0, int(self.ttl_sec - age))

    def get(self) -> SnapshotT:
        with self._lock.read_locked():
            snapshot = self._snapshot
            if self._is_fresh(snapshot, self.ttl_sec):
                return snapshot  # type: ignore[return-value]
        return self.refresh()

    def refresh(self) -> SnapshotT:
        with self._lock.write_locked():
            current = self._snapshot
            if self._is_fresh(current, self.collapse_sec):
                log.debug("%s refreshed moments ago, reusing snapshot", self.name)
                return current  # type: ignore[return-value]
            snapshot = self._build(current)
            self._snapshot = snapshot
            return snapshot

    def _build(self, previous: Optional[SnapshotT]) -> SnapshotT:
        raise NotImplementedError


class StaticDataCache(SnapshotCache[StaticSnapshot]):
    """Stations, entrances, lines and parking; refreshed daily."""

    name = "Static"

    def __init__(
        self,
        client: WmataClient,
        *,
        ttl_sec: float = 24 * 60 * 60,
        collapse_sec: float = 60.0,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(ttl_sec=ttl_sec, collapse_sec=collapse_sec, clock=clock)
        self._client = client

    def _build(self, previous: Optional[StaticSnapshot]) -> StaticSnapshot:
        started = time.monotonic()

        # Fatal: without the directory there is nothing to refresh.
        directory = self._client.station_list()

        # Sequential on purpose; WMATA rate-limits concurrent callers.
        stations: List[StationDetail] = []
        for entry in directory:
            code = entry.get("Code")
            if not code:
                log.warning("Skipping station without a code: %r", entry.get("Name"))
                continue
            try:
                stations.append(self._client.station_detail(code))
            except ProxyError as exc:
                log.error("Failed to fetch station %s: %s", code, exc)

        entrances = self._fetch_secondary(
            "entrances", self._client.entrances, previous.entrances if previous else ()
        )
        lines = self._fetch_secondary("lines", self._client.lines, previous.lines if previous else ())
        parking = self._fetch_secondary(
            "parking", self._client.parking, previous.parking if previous else ()
        )

        snapshot = StaticSnapshot(
            stations=tuple(stations),
            entrances=entrances,
            lines=lines,
            parking=parking,
            captured_at=self._clock(),
        )
        log.info(
            "[Static] API calls: %dms, %d/%d stations, %d entrances, %d lines, %d parking",
            (time.monotonic() - started) * 1000,
            len(stations),
            len(directory),
            len(entrances),
            len(lines),
            len(parking),
        )
        return snapshot

    def _fetch_secondary(
        self,
        label: str,
        fetch: Callable[[], Sequence[ItemT]],
        fallback: Tuple[ItemT, ...],
    ) -> Tuple[ItemT, ...]:
        try:
            return tuple(fetch())
        except ProxyError as exc:
            log.error("Failed to fetch %s, keeping %d cached: %s", label, len(fallback), exc)
            return fallback


class PredictionCache(SnapshotCache[PredictionSnapshot]):
    """System-wide train predictions; all-or-nothing."""

    name = "Predictions"

    def __init__(
        self,
        client: WmataClient,
        *,
        ttl_sec: float = 25.0,
        collapse_sec: float = 1.0,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(ttl_sec=ttl_sec, collapse_sec=collapse_sec, clock=clock)
        self._client = client

    def _build(self, previous: Optional[PredictionSnapshot]) -> PredictionSnapshot:
        started = time.monotonic()
        predictions = tuple(self._client.predictions())
        log.info(
            "[Predictions] API call: %dms, %d trains",
            (time.monotonic() - started) * 1000,
            len(predictions),
        )
        return PredictionSnapshot(predictions=predictions, captured_at=self._clock())
