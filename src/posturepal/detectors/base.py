from __future__ import annotations

import numpy as np

from posturepal.landmarks import LandmarkFrame


class BasePoseEstimator:
    name = "base"

    def estimate(self, frame_bgr: np.ndarray) -> LandmarkFrame | None:  # pragma: no cover - interface
        raise NotImplementedError

    def close(self) -> None:
        return None
