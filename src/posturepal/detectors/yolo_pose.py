from __future__ import annotations

import numpy as np

from posturepal.detectors.base import BasePoseEstimator
from posturepal.landmarks import COCO_LAYOUT, Landmark, LandmarkFrame


class YoloPoseEstimator(BasePoseEstimator):
    name = "yolo-pose"

    def __init__(
        self,
        model_path: str = "yolo11n-pose.pt",
        conf_threshold: float = 0.25,
        iou_threshold: float = 0.45,
        imgsz: int = 640,
        device: str = "cpu",
    ) -> None:
        try:
            from ultralytics import YOLO
        except Exception as e:
            raise RuntimeError(
                "YOLO-Pose backend requires ultralytics. Install with: pip install 'posturepal[yolo]'"
            ) from e

        self.model = YOLO(model_path)
        self.conf_threshold = conf_threshold
        self.iou_threshold = iou_threshold
        self.imgsz = imgsz
        self.device = device

    def estimate(self, frame_bgr: np.ndarray) -> LandmarkFrame | None:
        results = self.model.predict(
            source=frame_bgr,
            conf=self.conf_threshold,
            iou=self.iou_threshold,
            imgsz=self.imgsz,
            device=self.device,
            verbose=False,
        )
        if not results:
            return None

        result = results[0]
        if result.keypoints is None or result.keypoints.xy is None or len(result.keypoints.xy) == 0:
            return None

        kxy_all = result.keypoints.xy
        kcf_all = result.keypoints.conf
        person_idx = self._select_person(kxy_all, kcf_all)

        kxy = kxy_all[person_idx].cpu().numpy()
        if kcf_all is None:
            kcf = np.ones((kxy.shape[0],), dtype=np.float32)
        else:
            kcf = kcf_all[person_idx].cpu().numpy()

        # YOLO returns pixels; the posture logic works in normalized image coordinates.
        h, w = frame_bgr.shape[:2]
        points = tuple(
            Landmark(x=float(xy[0] / max(w, 1)), y=float(xy[1] / max(h, 1)), visibility=float(conf))
            for xy, conf in zip(kxy, kcf)
        )
        return LandmarkFrame(points=points, layout=COCO_LAYOUT)

    @staticmethod
    def _select_person(kxy_all, kcf_all) -> int:
        num_people = len(kxy_all)
        if num_people == 1 or kcf_all is None:
            return 0
        means = [float(kcf_all[i].mean().item()) for i in range(num_people)]
        return int(np.argmax(np.array(means)))
