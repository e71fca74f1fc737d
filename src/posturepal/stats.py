from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from posturepal.classifier import PostureStatus
from posturepal.storage import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "posture-history"
MAX_DAILY_BUCKETS = 30
HISTORY_UPDATE_INTERVAL_MS = 1000
LEDGER_FLUSH_INTERVAL_MS = 1000
MAX_HISTORY_POINTS = 600


@dataclass
class DailyStatsBucket:
    date: str
    good_duration_ms: int = 0
    bad_duration_ms: int = 0

    def to_record(self) -> dict:
        return {
            "date": self.date,
            "goodDurationMs": int(self.good_duration_ms),
            "badDurationMs": int(self.bad_duration_ms),
        }

    @classmethod
    def from_record(cls, record: dict) -> "DailyStatsBucket":
        date.fromisoformat(record["date"])
        return cls(
            date=str(record["date"]),
            good_duration_ms=int(record.get("goodDurationMs", 0)),
            bad_duration_ms=int(record.get("badDurationMs", 0)),
        )


@dataclass(frozen=True)
class SessionHistoryPoint:
    timestamp: int
    score: int


def local_date(ts_ms: int, tz: tzinfo | None = None) -> date:
    return datetime.fromtimestamp(ts_ms / 1000.0, tz).date()


def next_midnight_ms(day: date, tz: tzinfo | None = None) -> int:
    midnight = datetime.combine(day + timedelta(days=1), time(0), tzinfo=tz)
    return int(round(midnight.timestamp() * 1000))


def split_by_day(start_ms: int, end_ms: int, tz: tzinfo | None = None) -> list[tuple[date, int]]:
    """Break [start_ms, end_ms) into per-calendar-day spans."""
    spans: list[tuple[date, int]] = []
    cursor = start_ms
    while cursor < end_ms:
        day = local_date(cursor, tz)
        boundary = min(next_midnight_ms(day, tz), end_ms)
        if boundary <= cursor:
            boundary = end_ms
        spans.append((day, boundary - cursor))
        cursor = boundary
    return spans


def posture_score(good_ms: float, bad_ms: float) -> int:
    total = good_ms + bad_ms
    if total <= 0:
        return 0
    return int(round(good_ms / total * 100))


def format_duration(ms: float) -> str:
    seconds = int(ms // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m {seconds % 60}s"


class DailyLedger:
    """Per-day good/bad totals persisted under a single store key.

    The ledger keeps at most ``MAX_DAILY_BUCKETS`` entries sorted by date.
    A store that cannot be read leaves an empty ledger; a store that cannot
    be written keeps the in-memory copy. Neither is fatal. A failing store
    logs one traceback; repeats are logged at DEBUG until a save succeeds.
    """

    def __init__(self, store: KeyValueStore | None, key: str = STORAGE_KEY, max_buckets: int = MAX_DAILY_BUCKETS) -> None:
        self.store = store
        self.key = key
        self.max_buckets = max_buckets
        self.buckets: list[DailyStatsBucket] = []
        self.dirty = False
        self._save_failed = False
        self.load()

    def load(self) -> None:
        self.buckets = []
        self.dirty = False
        if self.store is None:
            return
        try:
            records = self.store.get(self.key)
            if records is None:
                return
            if not isinstance(records, list):
                raise ValueError(f"Expected a list under '{self.key}', got {type(records).__name__}")
            buckets = [DailyStatsBucket.from_record(r) for r in records]
        except Exception:
            logger.exception("Failed to load posture history; starting with an empty ledger")
            return
        buckets.sort(key=lambda b: b.date)
        self.buckets = buckets[-self.max_buckets:]

    def add(self, day: date, good_ms: int, bad_ms: int, persist: bool = True) -> DailyStatsBucket | None:
        """Fold durations into the bucket for ``day``.

        Returns None when ``day`` is older than every retained bucket of a full
        ledger; that time is dropped rather than evicting a newer day.
        """
        key = day.isoformat()
        bucket = self.get(day)
        if bucket is None:
            if len(self.buckets) >= self.max_buckets and key < self.buckets[0].date:
                logger.warning(
                    "Dropping %d ms good / %d ms bad for %s: older than the %d retained days",
                    good_ms, bad_ms, key, self.max_buckets,
                )
                return None
            bucket = DailyStatsBucket(date=key)
            self.buckets.append(bucket)
            self.buckets.sort(key=lambda b: b.date)
            del self.buckets[: max(len(self.buckets) - self.max_buckets, 0)]
        bucket.good_duration_ms += good_ms
        bucket.bad_duration_ms += bad_ms
        self.dirty = True
        if persist:
            self.save()
        return bucket

    def save(self) -> bool:
        if self.store is None:
            self.dirty = False
            return True
        try:
            self.store.set(self.key, [b.to_record() for b in self.buckets])
        except Exception:
            if self._save_failed:
                logger.debug("Posture history still not writable", exc_info=True)
            else:
                logger.exception("Failed to save posture history; keeping it in memory")
                self._save_failed = True
            return False
        if self._save_failed:
            logger.info("Posture history saved again")
            self._save_failed = False
        self.dirty = False
        return True

    def get(self, day: date) -> DailyStatsBucket | None:
        key = day.isoformat()
        return next((b for b in self.buckets if b.date == key), None)

    def summary(self, today: date, days: int = 7) -> list[DailyStatsBucket]:
        """The last ``days`` calendar days ending today, zero-filled where nothing was recorded."""
        out = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            found = self.get(day)
            out.append(found if found is not None else DailyStatsBucket(date=day.isoformat()))
        return out


class StatisticsAccumulator:
    """Session durations, the rolling score timeline, and writes into the daily ledger."""

    def __init__(
        self,
        ledger: DailyLedger,
        tz: tzinfo | None = None,
        history_interval_ms: int = HISTORY_UPDATE_INTERVAL_MS,
        history_limit: int = MAX_HISTORY_POINTS,
        flush_interval_ms: int = LEDGER_FLUSH_INTERVAL_MS,
    ) -> None:
        self.ledger = ledger
        self.tz = tz
        self.history_interval_ms = history_interval_ms
        self.flush_interval_ms = flush_interval_ms
        self.good_duration_ms = 0
        self.bad_duration_ms = 0
        self.history: deque[SessionHistoryPoint] = deque(maxlen=history_limit)
        self.last_update_ms: int | None = None
        self.last_history_ms: int | None = None
        self.last_flush_ms: int | None = None

    def start(self, now_ms: int) -> None:
        self.last_update_ms = now_ms
        self.last_flush_ms = now_ms

    def record(self, status: PostureStatus, now_ms: int) -> tuple[int, int]:
        good_delta = bad_delta = 0
        if self.last_update_ms is not None and now_ms > self.last_update_ms:
            if status == PostureStatus.GOOD:
                good_delta = now_ms - self.last_update_ms
            elif status.is_bad:
                bad_delta = now_ms - self.last_update_ms

            if good_delta or bad_delta:
                for day, span in split_by_day(self.last_update_ms, now_ms, self.tz):
                    self.ledger.add(day, span if good_delta else 0, span if bad_delta else 0, persist=False)
                self._maybe_flush(now_ms)

        self.good_duration_ms += good_delta
        self.bad_duration_ms += bad_delta
        # Advance even when nothing was credited so a returning person is not billed for the gap.
        self.last_update_ms = now_ms

        if status not in (PostureStatus.NO_PERSON, PostureStatus.INITIALIZING):
            self._sample_history(status, now_ms)
        return good_delta, bad_delta

    def _maybe_flush(self, now_ms: int) -> None:
        if self.last_flush_ms is not None and now_ms - self.last_flush_ms < self.flush_interval_ms:
            return
        self.flush(now_ms)

    def flush(self, now_ms: int | None = None) -> None:
        """Write pending ledger changes to the store."""
        if self.ledger.dirty:
            self.ledger.save()
        if now_ms is not None:
            self.last_flush_ms = now_ms

    def _sample_history(self, status: PostureStatus, now_ms: int) -> None:
        if self.last_history_ms is not None and now_ms - self.last_history_ms < self.history_interval_ms:
            return
        self.history.append(SessionHistoryPoint(timestamp=now_ms, score=1 if status == PostureStatus.GOOD else 0))
        self.last_history_ms = now_ms

    @property
    def score(self) -> int:
        return posture_score(self.good_duration_ms, self.bad_duration_ms)

    @property
    def timeline_score(self) -> int:
        """Percentage of good samples on the session timeline (roughly the last ten minutes)."""
        if not self.history:
            return 0
        return int(round(sum(p.score for p in self.history) / len(self.history) * 100))

    def reset_session(self, now_ms: int) -> None:
        self.good_duration_ms = 0
        self.bad_duration_ms = 0
        self.history.clear()
        self.last_history_ms = None
        self.last_update_ms = now_ms
