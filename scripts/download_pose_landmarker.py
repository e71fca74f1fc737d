#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path
import urllib.request


MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/pose_landmarker/"
    "pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
)
DEFAULT_OUT_PATH = Path("models/mediapipe/pose_landmarker_lite.task")


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch the MediaPipe pose landmarker used by `posturepal monitor`")
    parser.add_argument("--out", type=Path, default=DEFAULT_OUT_PATH, help="Destination .task file")
    args = parser.parse_args()

    if args.out.exists():
        print(f"Pose model already present at {args.out}")
        return 0
    args.out.parent.mkdir(parents=True, exist_ok=True)
    print(f"Downloading pose landmarker to {args.out} ...")
    urllib.request.urlretrieve(MODEL_URL, args.out)
    print("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
