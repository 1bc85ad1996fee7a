import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence

from . import config
from .exceptions import ArtifactWriteError
from .models import ItemResult, NormalizedFrame, ParseStats, ReaderKind


def format_parse_summary(stats: ParseStats,
                         source: Optional[ReaderKind],
                         attempts: Optional[Dict[ReaderKind, int]] = None) -> str:
    """
    One line per item. `attempts` lists the usable rows each source gave,
    so a source that was read but rejected still shows up.
    """
    label = source.value if source is not None else "none"
    line = (f"Frame parse summary (source={label}): rows={stats.raw_rows}, valid={stats.valid_rows}, "
            f"skipped={stats.skipped_rows}, unique_dt_keys={stats.unique_dt_keys}, "
            f"segment_count={stats.segment_count}")
    if attempts:
        tried = ",".join(f"{kind.value}:{rows}" for kind, rows in attempts.items())
        line += f", attempts={tried}"
    return line


def log_parse_summary(stats: ParseStats,
                      source: Optional[ReaderKind],
                      attempts: Optional[Dict[ReaderKind, int]] = None):
    logging.info(format_parse_summary(stats, source, attempts))


def write_timeline_debug(frames: Sequence[NormalizedFrame], path: Path):
    """
    Dumps the normalized frame stream as TSV, one row per frame, marking
    the frames where a new segment starts.
    """
    prev_key = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter="\t", lineterminator="\n")
            writer.writerow(config.TIMELINE_DEBUG_HEADER)
            for frame in frames:
                key = frame.dt_key
                change = 1 if key != prev_key else 0
                prev_key = key
                writer.writerow([
                    frame.sequence_key,
                    f"{frame.scene_time:.6f}",
                    frame.date_part,
                    frame.time_part,
                    key,
                    change,
                ])
    except OSError as e:
        raise ArtifactWriteError(f"Failed to write timeline debug {path}: {e}")
    logging.debug(f"Timeline debug written: {path} ({len(frames)} frames)")


class ReportGenerator:
    HEADERS = [
        "Media Path",
        "Outcome",
        "Frame Source",
        "Raw Rows",
        "Valid Rows",
        "Skipped Rows",
        "Unique DT Keys",
        "Segments",
        "Overlay Path",
        "Subtitle Path",
        "Notes",
    ]

    def generate_batch_report(self, results: Iterable[ItemResult], output_csv: str):
        """Writes one CSV row per processed item."""
        logging.info(f"Writing batch report -> {output_csv}")

        count = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.HEADERS)
            for result in results:
                writer.writerow(self._row(result))
                count += 1

        logging.info(f"Report complete. {count} item(s).")

    def _row(self, result: ItemResult) -> list:
        stats = result.stats
        return [
            str(result.media_path),
            result.outcome.value,
            result.frame_source.value if result.frame_source else "",
            stats.raw_rows,
            stats.valid_rows,
            stats.skipped_rows,
            stats.unique_dt_keys,
            stats.segment_count,
            str(result.overlay_path) if result.overlay_path else "",
            str(result.subtitle_path) if result.subtitle_path else "",
            result.notes,
        ]
