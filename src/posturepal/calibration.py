from __future__ import annotations

import logging

from posturepal.metrics import MetricExtractor, PostureMetrics

logger = logging.getLogger(__name__)

# Used until a personal baseline has been captured.
DEFAULT_BASELINE = PostureMetrics(
    shoulder_slope=0.03,
    neck_offset=0.05,
    head_yaw=0.02,
    face_width=0.15,
    spinal_ratio=1.5,
)


class BaselineCalibrator:
    """Snapshots the user's smoothed metrics once the smoothing window fills."""

    def __init__(self, extractor: MetricExtractor) -> None:
        self.extractor = extractor
        self.baseline: PostureMetrics | None = None

    @property
    def is_calibrated(self) -> bool:
        return self.baseline is not None

    def maybe_capture(self, smoothed: PostureMetrics) -> PostureMetrics | None:
        if self.baseline is not None:
            return None
        buffer = self.extractor.buffers["shoulder_slope"]
        if len(buffer) < buffer.size:
            return None
        self.baseline = smoothed
        logger.info("Baseline captured: %s", {k: round(v, 4) for k, v in smoothed.as_dict().items()})
        return smoothed

    def effective_baseline(self) -> PostureMetrics:
        return self.baseline if self.baseline is not None else DEFAULT_BASELINE

    def reset(self) -> None:
        self.baseline = None
        self.extractor.clear()
