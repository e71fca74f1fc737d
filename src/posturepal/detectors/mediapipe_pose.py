from __future__ import annotations

import os
from pathlib import Path

import cv2

# Prefer CPU execution for broader compatibility with desktop webcams.
os.environ.setdefault("MEDIAPIPE_DISABLE_GPU", "1")

import mediapipe as mp
import numpy as np

from posturepal.detectors.base import BasePoseEstimator
from posturepal.landmarks import MEDIAPIPE_LAYOUT, Landmark, LandmarkFrame


class MediaPipePoseEstimator(BasePoseEstimator):
    name = "mediapipe"

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        task_model_path: str | None = None,
    ) -> None:
        if hasattr(mp, "solutions"):
            self.backend = "solutions"
            self.pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=1,
                smooth_landmarks=True,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
            return

        self.backend = "tasks"
        self._init_tasks_backend(
            task_model_path=task_model_path,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def _init_tasks_backend(
        self,
        task_model_path: str | None,
        min_detection_confidence: float,
        min_tracking_confidence: float,
    ) -> None:
        model_path = Path(task_model_path or "models/mediapipe/pose_landmarker_lite.task")
        if not model_path.exists():
            raise RuntimeError(
                f"MediaPipe Tasks model not found at: {model_path}. "
                "Download it first with scripts/download_pose_landmarker.py."
            )

        try:
            from mediapipe.tasks import python as mp_python
            from mediapipe.tasks.python import vision
        except Exception as e:
            raise RuntimeError(
                "Installed mediapipe package does not provide either `solutions` or tasks vision APIs."
            ) from e

        options = vision.PoseLandmarkerOptions(
            base_options=mp_python.BaseOptions(
                model_asset_path=str(model_path),
                delegate=mp_python.BaseOptions.Delegate.CPU,
            ),
            running_mode=vision.RunningMode.IMAGE,
            num_poses=1,
            min_pose_detection_confidence=min_detection_confidence,
            min_pose_presence_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self.pose = vision.PoseLandmarker.create_from_options(options)
        self._mp_image_cls = mp.Image
        self._mp_image_fmt = mp.ImageFormat

    def estimate(self, frame_bgr: np.ndarray) -> LandmarkFrame | None:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        if self.backend == "solutions":
            results = self.pose.process(frame_rgb)
            if not results.pose_landmarks:
                return None
            lm = results.pose_landmarks.landmark
        else:
            mp_image = self._mp_image_cls(image_format=self._mp_image_fmt.SRGB, data=frame_rgb)
            results = self.pose.detect(mp_image)
            if not results.pose_landmarks:
                return None
            lm = results.pose_landmarks[0]

        return LandmarkFrame(points=tuple(self._to_landmark(p) for p in lm), layout=MEDIAPIPE_LAYOUT)

    def close(self) -> None:
        if hasattr(self.pose, "close"):
            self.pose.close()

    @staticmethod
    def _to_landmark(landmark) -> Landmark:
        return Landmark(
            x=float(landmark.x),
            y=float(landmark.y),
            visibility=float(getattr(landmark, "visibility", 1.0)),
        )
