from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path

from posturepal.config import ConfigError, load_settings
from posturepal.report import write_reports
from posturepal.stats import DailyLedger, format_duration
from posturepal.storage import JsonFileStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PosturePal posture monitor")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    mon = sub.add_parser("monitor", help="Watch posture through the webcam")
    mon.add_argument("--model", default="mediapipe", help="Pose model name (mediapipe or yolo-pose)")
    mon.add_argument("--camera-id", type=int, default=0, help="Webcam device id")
    mon.add_argument("--sensitivity", type=int, default=None, help="Detection sensitivity, 20-80 in steps of 5")
    mon.add_argument("--no-sound", action="store_true", help="Disable the alert tone")
    mon.add_argument("--no-notifications", action="store_true", help="Disable desktop notifications")
    mon.add_argument("--display", action="store_true", help="Show the camera window (q quit, r recalibrate, s reset stats)")
    mon.add_argument("--duration-minutes", type=float, default=None, help="Stop automatically after N minutes")
    mon.add_argument("--stats-path", default=None, help="Where daily posture history is kept")
    mon.add_argument("--config", default="configs/posturepal.yaml", help="Settings YAML")

    stats = sub.add_parser("stats", help="Show recent daily posture history")
    stats.add_argument("--days", type=int, default=7, help="Number of days ending today")
    stats.add_argument("--stats-path", default=None, help="Where daily posture history is kept")
    stats.add_argument("--output-dir", default=None, help="Also write CSV and Markdown reports here")
    stats.add_argument("--config", default="configs/posturepal.yaml", help="Settings YAML")

    return parser.parse_args(argv)


def monitor(args: argparse.Namespace) -> int:
    from posturepal.config import load_model_config
    from posturepal.detectors.factory import build_estimator
    from posturepal.runner import MonitorRunner

    config_path = Path(args.config)
    settings = load_settings(config_path).with_overrides(
        sensitivity=args.sensitivity,
        stats_path=args.stats_path,
        sound_enabled=False if args.no_sound else None,
        notifications_enabled=False if args.no_notifications else None,
    )
    estimator = build_estimator(args.model, model_cfg=load_model_config(config_path, args.model))

    runner = MonitorRunner(
        estimator=estimator,
        settings=settings,
        camera_id=args.camera_id,
        display=args.display,
    )
    report = runner.run(duration_minutes=args.duration_minutes)
    print(f"Session complete after {report.passes} passes")
    print(f"  good posture: {format_duration(report.good_duration_ms)}")
    print(f"  slouching: {format_duration(report.bad_duration_ms)}")
    print(f"  posture score: {report.score}%")
    print(f"  last ten minutes: {report.timeline_score}%")
    print(f"History: {report.stats_path}")
    return 0


def show_stats(args: argparse.Namespace) -> int:
    settings = load_settings(Path(args.config)).with_overrides(stats_path=args.stats_path)
    ledger = DailyLedger(JsonFileStore(Path(settings.stats_path)))
    days = ledger.summary(date.today(), days=args.days)

    for b in days:
        print(f"{b.date}  good {format_duration(b.good_duration_ms):>8}  bad {format_duration(b.bad_duration_ms):>8}")

    if args.output_dir:
        csv_path, md_path = write_reports(days, Path(args.output_dir))
        print(f"Wrote CSV: {csv_path}")
        print(f"Wrote Markdown: {md_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "monitor":
            return monitor(args)
        if args.command == "stats":
            return show_stats(args)
    except ConfigError as e:
        logging.getLogger(__name__).error("Invalid configuration: %s", e)
        return 2
    raise ValueError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
