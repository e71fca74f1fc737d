from __future__ import annotations

from posturepal.detectors.base import BasePoseEstimator


def build_estimator(model_name: str, model_cfg: dict | None = None) -> BasePoseEstimator:
    cfg = model_cfg or {}
    key = model_name.lower()

    if key == "mediapipe":
        from posturepal.detectors.mediapipe_pose import MediaPipePoseEstimator

        return MediaPipePoseEstimator(
            min_detection_confidence=float(cfg.get("min_detection_confidence", 0.5)),
            min_tracking_confidence=float(cfg.get("min_tracking_confidence", 0.5)),
            task_model_path=cfg.get("task_model_path"),
        )

    if key == "yolo-pose":
        from posturepal.detectors.yolo_pose import YoloPoseEstimator

        return YoloPoseEstimator(
            model_path=str(cfg.get("model_path", "yolo11n-pose.pt")),
            conf_threshold=float(cfg.get("conf_threshold", 0.25)),
            iou_threshold=float(cfg.get("iou_threshold", 0.45)),
            imgsz=int(cfg.get("imgsz", 640)),
            device=str(cfg.get("device", "cpu")),
        )

    raise ValueError(f"Unsupported model: {model_name}")
