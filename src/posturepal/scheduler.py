from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from posturepal.classifier import PostureStatus
from posturepal.landmarks import LandmarkFrame
from posturepal.notifications import Notifier
from posturepal.pipeline import AnalysisResult, PosturePipeline

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_FPS = 30.0
DEFAULT_BACKGROUND_INTERVAL_S = 1.0


class Clock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class Cadence(str, Enum):
    DISPLAY = "display"
    BACKGROUND = "background"


class Action(str, Enum):
    STOP = "stop"
    RECALIBRATE = "recalibrate"
    RESET_STATS = "reset-stats"


class FrameSource:
    """Port for the pose-estimation collaborator."""

    def open(self) -> None:
        return None

    def read(self) -> LandmarkFrame | None:  # pragma: no cover - interface
        raise NotImplementedError

    def close(self) -> None:
        return None


class HostSurface:
    """Port for whatever shows results to the user. The default is never visible."""

    def is_visible(self) -> bool:
        return False

    def render(self, result: AnalysisResult) -> None:
        return None

    def poll_action(self) -> Action | None:
        return None

    def close(self) -> None:
        return None


class FrameScheduler:
    """Two cadences: one pass per display frame while visible, a slow timer while hidden."""

    def __init__(
        self,
        display_fps: float = DEFAULT_DISPLAY_FPS,
        background_interval_s: float = DEFAULT_BACKGROUND_INTERVAL_S,
    ) -> None:
        if display_fps <= 0:
            raise ValueError(f"display_fps must be positive, got {display_fps}")
        self.display_interval_s = 1.0 / display_fps
        self.background_interval_s = background_interval_s
        self.cadence = Cadence.BACKGROUND

    def set_visible(self, visible: bool) -> bool:
        cadence = Cadence.DISPLAY if visible else Cadence.BACKGROUND
        if cadence == self.cadence:
            return False
        logger.info("Switching cadence %s -> %s", self.cadence.value, cadence.value)
        self.cadence = cadence
        return True

    @property
    def interval_s(self) -> float:
        return self.display_interval_s if self.cadence == Cadence.DISPLAY else self.background_interval_s


class MonitorDriver:
    """Owns the run loop: pulls one frame, runs one full pipeline pass, waits, repeats."""

    def __init__(
        self,
        source: FrameSource,
        pipeline_factory: Callable[[], PosturePipeline],
        clock: Clock | None = None,
        scheduler: FrameScheduler | None = None,
        surface: HostSurface | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.source = source
        self.pipeline_factory = pipeline_factory
        self.clock = clock or Clock()
        self.scheduler = scheduler or FrameScheduler()
        self.surface = surface or HostSurface()
        self.notifier = notifier
        self.pipeline: PosturePipeline | None = None
        self.status = PostureStatus.INITIALIZING
        self.last_result: AnalysisResult | None = None
        self.passes = 0
        self._running = False
        self._in_flight = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        if self.notifier is not None:
            try:
                self.notifier.request_permission()
            except Exception:
                logger.exception("Notification permission request failed")
        self.source.open()
        self.pipeline = self.pipeline_factory()
        self.pipeline.start(self.clock.now_ms())
        self.status = self.pipeline.status
        self._running = True
        logger.info("Monitoring started")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        try:
            if self.pipeline is not None:
                self.pipeline.flush()
            self.source.close()
        finally:
            self.pipeline = None
            self.status = PostureStatus.INITIALIZING
            logger.info("Monitoring stopped after %d passes", self.passes)

    def recalibrate(self) -> None:
        if self.pipeline is not None:
            self.pipeline.recalibrate()

    def reset_stats(self) -> None:
        if self.pipeline is not None:
            self.pipeline.reset_stats(self.clock.now_ms())

    def step(self) -> AnalysisResult | None:
        if not self._running or self.pipeline is None or self._in_flight:
            return None

        self._in_flight = True
        try:
            visible = self.surface.is_visible()
            self.scheduler.set_visible(visible)
            try:
                frame = self.source.read()
            except Exception:
                logger.exception("Pose estimation failed; treating frame as empty")
                frame = None

            result = self.pipeline.process(frame, self.clock.now_ms(), host_visible=visible)
            self.passes += 1
            self.status = result.status
            self.last_result = result
            self.surface.render(result)
        finally:
            self._in_flight = False

        self._handle_action(self.surface.poll_action())
        return result

    def _handle_action(self, action: Action | None) -> None:
        if action is None:
            return
        logger.info("Action requested: %s", action.value)
        if action == Action.STOP:
            self.stop()
        elif action == Action.RECALIBRATE:
            self.recalibrate()
        elif action == Action.RESET_STATS:
            self.reset_stats()

    def run(self, duration_ms: int | None = None) -> AnalysisResult | None:
        self.start()
        started = self.clock.now_ms()
        try:
            while self._running:
                self.step()
                if duration_ms is not None and self.clock.now_ms() - started >= duration_ms:
                    break
                if self._running:
                    self.clock.sleep(self.scheduler.interval_s)
        finally:
            self.stop()
        return self.last_result
