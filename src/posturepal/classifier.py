from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from posturepal.metrics import PostureMetrics

SENSITIVITY_MIN = 20
SENSITIVITY_MAX = 80
SENSITIVITY_STEP = 5
DEFAULT_SENSITIVITY = 50

SHOULDER_DELTA = 0.04
NECK_DELTA = 0.06
HEAD_YAW_DELTA = 0.03
SPINAL_RATIO_DELTA = 0.18
DISTANCE_FACTOR = 1.4


class PostureStatus(str, Enum):
    GOOD = "good"
    SIT_STRAIGHT = "sit-straight"
    MOVE_BACK = "move-back"
    NO_PERSON = "no-person"
    INITIALIZING = "initializing"

    @property
    def is_bad(self) -> bool:
        return self in (PostureStatus.SIT_STRAIGHT, PostureStatus.MOVE_BACK)


def sensitivity_multiplier(sensitivity: float) -> float:
    return 1 + (sensitivity - 50) / 100


@dataclass(frozen=True)
class Thresholds:
    shoulder: float
    neck: float
    head_yaw: float
    spinal_ratio: float
    distance: float

    @classmethod
    def for_baseline(cls, baseline: PostureMetrics, sensitivity: float) -> "Thresholds":
        m = sensitivity_multiplier(sensitivity)
        return cls(
            shoulder=SHOULDER_DELTA / m,
            neck=NECK_DELTA / m,
            head_yaw=HEAD_YAW_DELTA / m,
            spinal_ratio=SPINAL_RATIO_DELTA / (m * 1.2),
            distance=baseline.face_width * DISTANCE_FACTOR / m,
        )


@dataclass(frozen=True)
class Classification:
    status: PostureStatus
    reason: str
    thresholds: Thresholds


class PostureClassifier:
    """Compares smoothed metrics to a baseline; the first failing rule decides the status."""

    def __init__(self, sensitivity: int = DEFAULT_SENSITIVITY) -> None:
        self.sensitivity = sensitivity

    def classify(self, metrics: PostureMetrics, baseline: PostureMetrics) -> Classification:
        thr = Thresholds.for_baseline(baseline, self.sensitivity)

        # Proximity is checked first: being too close matters regardless of posture shape.
        if metrics.face_width > thr.distance:
            return Classification(PostureStatus.MOVE_BACK, "too_close", thr)
        if metrics.shoulder_slope > baseline.shoulder_slope + thr.shoulder:
            return Classification(PostureStatus.SIT_STRAIGHT, "shoulder_tilt", thr)
        if metrics.neck_offset > baseline.neck_offset + thr.neck:
            return Classification(PostureStatus.SIT_STRAIGHT, "neck_offset", thr)
        if metrics.head_yaw > baseline.head_yaw + thr.head_yaw:
            return Classification(PostureStatus.SIT_STRAIGHT, "head_turn", thr)
        if metrics.spinal_ratio < baseline.spinal_ratio - thr.spinal_ratio:
            return Classification(PostureStatus.SIT_STRAIGHT, "slouch", thr)
        return Classification(PostureStatus.GOOD, "ok", thr)
