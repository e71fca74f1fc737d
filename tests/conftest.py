from __future__ import annotations

from datetime import timezone

import pytest

from posturepal.alerts import AlertDispatcher
from posturepal.classifier import PostureClassifier
from posturepal.landmarks import MEDIAPIPE_LAYOUT, Landmark, LandmarkFrame
from posturepal.notifications import Notifier
from posturepal.pipeline import PosturePipeline
from posturepal.stats import DailyLedger, StatisticsAccumulator
from posturepal.storage import MemoryStore

GOOD_POSE = {
    "nose": (0.5, 0.25),
    "left_ear": (0.425, 0.3),
    "right_ear": (0.575, 0.3),
    "left_shoulder": (0.35, 0.5),
    "right_shoulder": (0.65, 0.5),
}


def make_frame(visibility: float = 0.9, **overrides: tuple[float, float]) -> LandmarkFrame:
    """33-point MediaPipe frame; unspecified keypoints sit at the image centre."""
    pose = {**GOOD_POSE, **overrides}
    points = [Landmark(0.5, 0.5, 0.1) for _ in range(33)]
    for name, (x, y) in pose.items():
        points[getattr(MEDIAPIPE_LAYOUT, name)] = Landmark(x, y, visibility)
    return LandmarkFrame(points=tuple(points), layout=MEDIAPIPE_LAYOUT)


def tilted_frame() -> LandmarkFrame:
    return make_frame(right_shoulder=(0.65, 0.6))


def close_frame() -> LandmarkFrame:
    # Ears twice as far apart: face much larger than baseline.
    return make_frame(left_ear=(0.35, 0.3), right_ear=(0.65, 0.3))


class FakeClock:
    def __init__(self, start_ms: int = 1_000_000) -> None:
        self.now = start_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += int(round(seconds * 1000))

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingSound:
    def __init__(self) -> None:
        self.played = 0

    def play_tone(self) -> None:
        self.played += 1


class RecordingNotifier(Notifier):
    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.sent: list[tuple[str, str]] = []
        self.permission_requests = 0

    def permission_granted(self) -> bool:
        return self.granted

    def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sound() -> RecordingSound:
    return RecordingSound()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(store) -> DailyLedger:
    return DailyLedger(store)


@pytest.fixture
def make_pipeline(ledger, sound, notifier):
    def factory(sensitivity: int = 50, sound_enabled: bool = True, notifications_enabled: bool = True) -> PosturePipeline:
        return PosturePipeline(
            classifier=PostureClassifier(sensitivity),
            alerts=AlertDispatcher(
                sound=sound,
                notifier=notifier,
                sound_enabled=sound_enabled,
                notifications_enabled=notifications_enabled,
            ),
            stats=StatisticsAccumulator(ledger, tz=timezone.utc),
        )

    return factory
