from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    visibility: float = 1.0


@dataclass(frozen=True)
class PoseLayout:
    """Indices of the keypoints the posture logic consumes."""

    name: str
    nose: int
    left_ear: int
    right_ear: int
    left_shoulder: int
    right_shoulder: int

    @property
    def required(self) -> tuple[int, ...]:
        return (self.nose, self.left_ear, self.right_ear, self.left_shoulder, self.right_shoulder)


# 33-point BlazePose topology used by MediaPipe.
MEDIAPIPE_LAYOUT = PoseLayout("mediapipe", nose=0, left_ear=7, right_ear=8, left_shoulder=11, right_shoulder=12)
# COCO keypoints used by YOLO pose models.
COCO_LAYOUT = PoseLayout("coco", nose=0, left_ear=3, right_ear=4, left_shoulder=5, right_shoulder=6)


@dataclass(frozen=True)
class LandmarkFrame:
    points: tuple[Landmark, ...]
    layout: PoseLayout = MEDIAPIPE_LAYOUT

    @classmethod
    def from_xyv(cls, points: Sequence[Sequence[float]], layout: PoseLayout = MEDIAPIPE_LAYOUT) -> "LandmarkFrame":
        return cls(
            points=tuple(Landmark(float(p[0]), float(p[1]), float(p[2]) if len(p) > 2 else 1.0) for p in points),
            layout=layout,
        )

    def has_required(self) -> bool:
        return len(self.points) > max(self.layout.required)

    @property
    def nose(self) -> Landmark:
        return self.points[self.layout.nose]

    @property
    def left_ear(self) -> Landmark:
        return self.points[self.layout.left_ear]

    @property
    def right_ear(self) -> Landmark:
        return self.points[self.layout.right_ear]

    @property
    def left_shoulder(self) -> Landmark:
        return self.points[self.layout.left_shoulder]

    @property
    def right_shoulder(self) -> Landmark:
        return self.points[self.layout.right_shoulder]
