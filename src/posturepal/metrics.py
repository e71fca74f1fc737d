from __future__ import annotations

from dataclasses import asdict, dataclass, fields

from posturepal.landmarks import LandmarkFrame
from posturepal.smoothing import SMOOTHING_BUFFER_SIZE, SmoothingBuffer


class DegenerateFrameError(ValueError):
    """Raised when a frame cannot produce metrics (missing landmarks, zero face width)."""


@dataclass(frozen=True)
class PostureMetrics:
    shoulder_slope: float
    neck_offset: float
    head_yaw: float
    face_width: float
    spinal_ratio: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


METRIC_NAMES = tuple(f.name for f in fields(PostureMetrics))


@dataclass(frozen=True)
class MetricReading:
    raw: PostureMetrics
    smoothed: PostureMetrics
    confidence: float


def compute_raw_metrics(frame: LandmarkFrame) -> tuple[PostureMetrics, float]:
    if not frame.has_required():
        raise DegenerateFrameError(
            f"Frame has {len(frame.points)} landmarks; layout '{frame.layout.name}' needs index {max(frame.layout.required)}"
        )

    nose = frame.nose
    l_ear, r_ear = frame.left_ear, frame.right_ear
    l_sh, r_sh = frame.left_shoulder, frame.right_shoulder

    face_width = abs(l_ear.x - r_ear.x)
    if face_width == 0:
        raise DegenerateFrameError("Zero face width; spinal ratio is undefined")

    shoulder_mid_x = (l_sh.x + r_sh.x) / 2
    shoulder_mid_y = (l_sh.y + r_sh.y) / 2
    ear_mid_x = (l_ear.x + r_ear.x) / 2

    raw = PostureMetrics(
        shoulder_slope=abs(l_sh.y - r_sh.y),
        neck_offset=abs(nose.x - shoulder_mid_x),
        head_yaw=abs(nose.x - ear_mid_x),
        face_width=face_width,
        spinal_ratio=abs(shoulder_mid_y - nose.y) / face_width,
    )
    confidence = (l_sh.visibility + r_sh.visibility + nose.visibility) / 3
    return raw, confidence


class MetricExtractor:
    """Turns landmark frames into smoothed posture metrics, one buffer per channel."""

    def __init__(self, buffer_size: int = SMOOTHING_BUFFER_SIZE) -> None:
        self.buffers = {name: SmoothingBuffer(buffer_size) for name in METRIC_NAMES}

    def extract(self, frame: LandmarkFrame) -> MetricReading:
        # Raises before any buffer is touched so degenerate frames never skew the averages.
        raw, confidence = compute_raw_metrics(frame)
        raw_values = raw.as_dict()
        smoothed = PostureMetrics(**{name: self.buffers[name].push(raw_values[name]) for name in METRIC_NAMES})
        return MetricReading(raw=raw, smoothed=smoothed, confidence=confidence)

    def samples_seen(self, name: str = "shoulder_slope") -> int:
        return len(self.buffers[name])

    def clear(self) -> None:
        for buffer in self.buffers.values():
            buffer.clear()
