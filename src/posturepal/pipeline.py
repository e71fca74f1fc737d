from __future__ import annotations

import logging
from dataclasses import dataclass, field

from posturepal.alerts import AlertDispatcher, AlertOutcome
from posturepal.calibration import BaselineCalibrator
from posturepal.classifier import PostureClassifier, PostureStatus
from posturepal.hysteresis import HysteresisGate
from posturepal.landmarks import LandmarkFrame
from posturepal.metrics import DegenerateFrameError, MetricExtractor, PostureMetrics
from posturepal.stats import StatisticsAccumulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    status: PostureStatus
    raw_status: PostureStatus | None = None
    reason: str | None = None
    metrics: PostureMetrics | None = None
    shoulder_slope: float = 0.0
    neck_offset: float = 0.0
    confidence: float = 0.0
    calibrated: bool = False
    good_duration_ms: int = 0
    bad_duration_ms: int = 0
    score: int = 0
    timeline_score: int = 0
    timeline_points: int = 0
    alerts: AlertOutcome = field(default_factory=AlertOutcome)


class PosturePipeline:
    """All per-session state: smoothing buffers, baseline, dwell timer, cooldowns and session stats.

    Built on session start, reset in place on recalibration, dropped on stop.
    """

    def __init__(
        self,
        classifier: PostureClassifier,
        alerts: AlertDispatcher,
        stats: StatisticsAccumulator,
        gate: HysteresisGate | None = None,
        extractor: MetricExtractor | None = None,
    ) -> None:
        self.extractor = extractor or MetricExtractor()
        self.calibrator = BaselineCalibrator(self.extractor)
        self.classifier = classifier
        self.gate = gate or HysteresisGate()
        self.alerts = alerts
        self.stats = stats
        self.status = PostureStatus.INITIALIZING

    def start(self, now_ms: int) -> None:
        self.stats.start(now_ms)
        self.status = PostureStatus.GOOD

    def process(self, frame: LandmarkFrame | None, now_ms: int, host_visible: bool = True) -> AnalysisResult:
        if frame is None:
            return self._no_person(now_ms, "no landmarks")

        try:
            reading = self.extractor.extract(frame)
        except DegenerateFrameError as e:
            return self._no_person(now_ms, str(e))

        self.calibrator.maybe_capture(reading.smoothed)
        classification = self.classifier.classify(reading.smoothed, self.calibrator.effective_baseline())
        gated = self.gate.update(classification.status, now_ms)

        alerts = AlertOutcome()
        if gated.confirmed:
            alerts = self.alerts.dispatch(classification.status, now_ms, host_visible)

        self._set_status(gated.status, classification.reason)
        self.stats.record(gated.status, now_ms)

        return AnalysisResult(
            status=gated.status,
            raw_status=classification.status,
            reason=classification.reason,
            metrics=reading.smoothed,
            shoulder_slope=reading.smoothed.shoulder_slope * 100,
            neck_offset=reading.smoothed.neck_offset * 100,
            confidence=reading.confidence,
            calibrated=self.calibrator.is_calibrated,
            alerts=alerts,
            **self._session_fields(),
        )

    def _no_person(self, now_ms: int, detail: str) -> AnalysisResult:
        logger.debug("No usable person this frame: %s", detail)
        # The dwell timer is left alone so a brief occlusion does not restart it.
        self._set_status(PostureStatus.NO_PERSON)
        self.stats.record(PostureStatus.NO_PERSON, now_ms)
        return AnalysisResult(
            status=PostureStatus.NO_PERSON,
            calibrated=self.calibrator.is_calibrated,
            **self._session_fields(),
        )

    def _session_fields(self) -> dict:
        return {
            "good_duration_ms": self.stats.good_duration_ms,
            "bad_duration_ms": self.stats.bad_duration_ms,
            "score": self.stats.score,
            "timeline_score": self.stats.timeline_score,
            "timeline_points": len(self.stats.history),
        }

    def _set_status(self, status: PostureStatus, reason: str | None = None) -> None:
        if status != self.status:
            logger.info("Posture status %s -> %s%s", self.status.value, status.value, f" ({reason})" if reason else "")
            self.status = status

    def recalibrate(self) -> None:
        self.calibrator.reset()
        self.gate.reset()
        self.alerts.reset()
        logger.info("Recalibrating: baseline and smoothing buffers cleared")

    def reset_stats(self, now_ms: int) -> None:
        self.stats.reset_session(now_ms)

    def flush(self) -> None:
        self.stats.flush()
