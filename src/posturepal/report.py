from __future__ import annotations

import csv
from pathlib import Path

from posturepal.stats import DailyStatsBucket, format_duration, posture_score


def summarize_buckets(buckets: list[DailyStatsBucket]) -> list[dict]:
    rows = []
    for b in buckets:
        rows.append(
            {
                "date": b.date,
                "good_minutes": round(b.good_duration_ms / 60_000),
                "bad_minutes": round(b.bad_duration_ms / 60_000),
                "good_duration_ms": b.good_duration_ms,
                "bad_duration_ms": b.bad_duration_ms,
                "score_pct": posture_score(b.good_duration_ms, b.bad_duration_ms),
            }
        )
    return rows


def write_reports(buckets: list[DailyStatsBucket], output_dir: Path) -> tuple[Path, Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / "posture_history.csv"
    md_path = output_dir / "posture_history.md"

    rows = summarize_buckets(buckets)
    fields = ["date", "good_minutes", "bad_minutes", "good_duration_ms", "bad_duration_ms", "score_pct"]

    with csv_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fields)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

    total_good = sum(b.good_duration_ms for b in buckets)
    total_bad = sum(b.bad_duration_ms for b in buckets)

    with md_path.open("w", encoding="utf-8") as f:
        f.write("# Posture History\n\n")
        if not rows:
            f.write("No posture history recorded.\n")
        else:
            f.write("| Date | Good | Slouching | Score |\n")
            f.write("|---|---:|---:|---:|\n")
            for b, row in zip(buckets, rows):
                f.write(
                    f"| {row['date']} | {format_duration(b.good_duration_ms)} | "
                    f"{format_duration(b.bad_duration_ms)} | {row['score_pct']}% |\n"
                )
            f.write(
                f"\n**Total:** {format_duration(total_good)} good, {format_duration(total_bad)} slouching, "
                f"score {posture_score(total_good, total_bad)}%\n"
            )

    return csv_path, md_path
