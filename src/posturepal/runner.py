from __future__ import annotations

import logging
import platform
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path

import cv2
import numpy as np

from posturepal.alerts import AlertDispatcher, SoundPlayer
from posturepal.audio import TonePlayer
from posturepal.classifier import PostureClassifier, PostureStatus
from posturepal.config import MonitorSettings
from posturepal.detectors.base import BasePoseEstimator
from posturepal.landmarks import LandmarkFrame
from posturepal.notifications import DesktopNotifier, Notifier
from posturepal.pipeline import AnalysisResult, PosturePipeline
from posturepal.scheduler import Action, Clock, FrameScheduler, FrameSource, HostSurface, MonitorDriver
from posturepal.stats import DailyLedger, StatisticsAccumulator, format_duration
from posturepal.storage import JsonFileStore

logger = logging.getLogger(__name__)

WINDOW_NAME = "PosturePal"
KEY_ACTIONS = {
    ord("q"): Action.STOP,
    ord("r"): Action.RECALIBRATE,
    ord("s"): Action.RESET_STATS,
}


def build_pipeline(
    settings: MonitorSettings,
    ledger: DailyLedger,
    sound: SoundPlayer | None = None,
    notifier: Notifier | None = None,
    tz: tzinfo | None = None,
) -> PosturePipeline:
    return PosturePipeline(
        classifier=PostureClassifier(settings.sensitivity),
        alerts=AlertDispatcher(
            sound=sound,
            notifier=notifier,
            sound_enabled=settings.sound_enabled,
            notifications_enabled=settings.notifications_enabled,
        ),
        stats=StatisticsAccumulator(ledger, tz=tz),
    )


class CameraLandmarkSource(FrameSource):
    """Reads webcam frames and hands them to a pose estimator."""

    def __init__(self, estimator: BasePoseEstimator, camera_id: int = 0) -> None:
        self.estimator = estimator
        self.camera_id = camera_id
        self.cap = None
        self.last_frame: np.ndarray | None = None

    def open(self) -> None:
        if platform.system() == "Darwin":
            cap = cv2.VideoCapture(self.camera_id, cv2.CAP_AVFOUNDATION)
        else:
            cap = cv2.VideoCapture(self.camera_id)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam camera_id={self.camera_id}")
        self.cap = cap

    def read(self) -> LandmarkFrame | None:
        if self.cap is None:
            return None
        ok, frame = self.cap.read()
        if not ok:
            logger.warning("Camera %s returned no frame", self.camera_id)
            return None
        self.last_frame = frame
        return self.estimator.estimate(frame)

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        self.last_frame = None


class WindowSurface(HostSurface):
    """Camera preview window; its visibility drives the scheduler cadence."""

    def __init__(self, source: CameraLandmarkSource) -> None:
        self.source = source
        self._opened = False
        self._pending: Action | None = None

    def is_visible(self) -> bool:
        if not self._opened:
            return True
        try:
            return cv2.getWindowProperty(WINDOW_NAME, cv2.WND_PROP_VISIBLE) >= 1
        except cv2.error:
            return False

    def render(self, result: AnalysisResult) -> None:
        if self.source.last_frame is not None:
            cv2.imshow(WINDOW_NAME, self.source.last_frame)
            self._opened = True
        key = cv2.waitKey(1) & 0xFF
        self._pending = KEY_ACTIONS.get(key)

    def poll_action(self) -> Action | None:
        action, self._pending = self._pending, None
        return action

    def close(self) -> None:
        if self._opened:
            cv2.destroyWindow(WINDOW_NAME)
            self._opened = False


class LogSurface(HostSurface):
    """Headless output: logs the running summary every ``interval_passes`` passes."""

    def __init__(self, interval_passes: int = 30) -> None:
        self.interval_passes = max(interval_passes, 1)
        self._count = 0

    def render(self, result: AnalysisResult) -> None:
        self._count += 1
        if self._count % self.interval_passes:
            return
        logger.info(
            "status=%s score=%d%% recent=%d%% good=%s bad=%s shoulder=%.2f neck=%.2f conf=%.2f",
            result.status.value,
            result.score,
            result.timeline_score,
            format_duration(result.good_duration_ms),
            format_duration(result.bad_duration_ms),
            result.shoulder_slope,
            result.neck_offset,
            result.confidence,
        )


@dataclass
class SessionReport:
    passes: int
    good_duration_ms: int
    bad_duration_ms: int
    score: int
    final_status: PostureStatus
    stats_path: Path
    timeline_score: int = 0


class MonitorRunner:
    def __init__(
        self,
        estimator: BasePoseEstimator,
        settings: MonitorSettings,
        camera_id: int = 0,
        display: bool = False,
        clock: Clock | None = None,
    ) -> None:
        self.estimator = estimator
        self.settings = settings
        self.camera_id = camera_id
        self.display = display
        self.clock = clock or Clock()

    def run(self, duration_minutes: float | None = None) -> SessionReport:
        stats_path = Path(self.settings.stats_path).expanduser()
        ledger = DailyLedger(JsonFileStore(stats_path))
        tone = TonePlayer() if self.settings.sound_enabled else None
        notifier = DesktopNotifier() if self.settings.notifications_enabled else None

        source = CameraLandmarkSource(self.estimator, camera_id=self.camera_id)
        surface = WindowSurface(source) if self.display else LogSurface()
        driver = MonitorDriver(
            source=source,
            pipeline_factory=lambda: build_pipeline(self.settings, ledger, sound=tone, notifier=notifier),
            clock=self.clock,
            scheduler=FrameScheduler(
                display_fps=self.settings.display_fps,
                background_interval_s=self.settings.background_interval_s,
            ),
            surface=surface,
            notifier=notifier,
        )

        duration_ms = int(duration_minutes * 60_000) if duration_minutes is not None else None
        try:
            last = driver.run(duration_ms=duration_ms)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            last = driver.last_result
        finally:
            driver.stop()
            surface.close()
            if tone is not None:
                tone.close()
            self.estimator.close()

        return SessionReport(
            passes=driver.passes,
            good_duration_ms=last.good_duration_ms if last else 0,
            bad_duration_ms=last.bad_duration_ms if last else 0,
            score=last.score if last else 0,
            final_status=last.status if last else PostureStatus.INITIALIZING,
            stats_path=stats_path,
            timeline_score=last.timeline_score if last else 0,
        )
