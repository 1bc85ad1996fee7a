import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from tqdm import tqdm

from . import config
from .exceptions import (
    ArtifactWriteError,
    ConfigurationError,
    DVMetaError,
    FrameRateDetectionError,
    MissingMetadataError,
)
from .metadata.extract import FrameExtractor
from .metadata.probe import FrameRateProbe
from .models import (
    ItemOutcome,
    ItemResult,
    MediaItem,
    ParseStats,
    ReaderResult,
    SegmentationResult,
    TimelineStatus,
)
from .policy import resolve_outcome
from .render.ass import render_ass
from .render.sendcmd import render_overlay
from .reporting import log_parse_summary, write_timeline_debug
from .settings import PipelineSettings, check_frame_rate
from .timeline.normalize import TimelineNormalizer
from .timeline.segments import SegmentBuilder


def write_artifact(path: Path, text: str):
    """
    Writes text through a sibling temp file and renames it into place,
    so the final name never holds a half-written artifact.
    """
    tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp, path)
    except OSError as e:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise ArtifactWriteError(f"Failed to write {path}: {e}")


def remove_artifacts(*paths: Path):
    """Deletes artifacts left at these paths by an earlier run."""
    for path in paths:
        if not path.exists():
            continue
        try:
            path.unlink()
        except OSError as e:
            raise ArtifactWriteError(f"Failed to remove stale {path}: {e}")
        logging.info(f"Removed stale artifact {path}")


def output_paths(item: MediaItem, out_dir: Optional[Path], layout_value: str) -> Tuple[Path, Path]:
    base = out_dir if out_dir is not None else item.media_path.parent
    overlay = base / config.OVERLAY_FILENAME.format(stem=item.stem)
    subtitle = base / config.SUBTITLE_FILENAME.format(stem=item.stem, layout=layout_value)
    return overlay, subtitle


class BurnInApp:
    """
    Reconstructs the recording date/time timeline for a capture and
    writes the overlay command file and the ASS subtitle file from it.

    Items are processed one at a time; nothing is shared between items.
    """

    def __init__(self, settings: PipelineSettings, probe: Optional[FrameRateProbe] = None):
        settings.validate(require_frame_rate=False)
        self.settings = settings
        self.extractor = FrameExtractor()
        self.probe = probe or FrameRateProbe()

    def frame_rate_for(self, item: MediaItem) -> float:
        if self.settings.frame_rate is not None:
            return check_frame_rate(self.settings.frame_rate)
        try:
            return self.probe.detect(item.media_path)
        except FrameRateDetectionError as e:
            raise ConfigurationError(str(e))

    def build_timeline(self, item: MediaItem, frame_rate: float) -> Tuple[ReaderResult, SegmentationResult]:
        """
        Reader -> Normalizer -> Segment Builder for one item.
        Never raises for bad or missing metadata; that is reported in the status.
        """
        s = self.settings
        reader_result = self.extractor.select(item.sources, s.min_source_rows, s.reader_priority)

        if not reader_result.available:
            empty = SegmentationResult((), ParseStats(), TimelineStatus.UNAVAILABLE)
            return reader_result, empty

        normalizer = TimelineNormalizer(frame_rate, s.index_base_for(reader_result.kind))
        frames, stats = normalizer.normalize(reader_result.records)

        builder = SegmentBuilder(frame_rate, s.min_segments)
        return reader_result, builder.build(frames, stats)

    def process_item(self,
                     item: MediaItem,
                     overlay_path: Path,
                     subtitle_path: Path,
                     timeline_debug_path: Optional[Path] = None) -> ItemResult:
        """
        Runs the whole pipeline for one capture.

        Raises ConfigurationError before touching any file if the frame
        rate or an output path is missing, and MissingMetadataError under
        the 'error' policy. Both artifacts are rendered from the same
        segment tuple, so their timings always agree.
        """
        if overlay_path is None or subtitle_path is None:
            raise ConfigurationError(f"Output paths are required for {item.media_path}")
        frame_rate = self.frame_rate_for(item)
        logging.debug(f"Processing {item.media_path} at {frame_rate:.6f} fps")

        reader_result, seg = self.build_timeline(item, frame_rate)
        log_parse_summary(seg.stats, reader_result.kind, reader_result.attempts)

        if timeline_debug_path is not None and seg.frames:
            write_timeline_debug(seg.frames, timeline_debug_path)

        if seg.status != TimelineStatus.PROCEED:
            # No fresh artifacts will follow; older ones would contradict this run
            remove_artifacts(overlay_path, subtitle_path)

        # May raise MissingMetadataError (policy 'error'); nothing has been written yet
        outcome = resolve_outcome(seg.status, self.settings.missing_meta, seg.stats, str(item.media_path))

        result = ItemResult(
            media_path=item.media_path,
            outcome=outcome,
            status=seg.status,
            stats=seg.stats,
            frame_source=reader_result.kind,
        )
        if outcome != ItemOutcome.SUCCESS:
            result.notes = f"timeline {seg.status.value}"
            return result

        layout = self.settings.layout
        overlay_text = render_overlay(seg.segments, layout)
        subtitle_text = render_ass(seg.segments, layout, self.settings.font_name)

        write_artifact(overlay_path, overlay_text)
        try:
            write_artifact(subtitle_path, subtitle_text)
        except ArtifactWriteError:
            # One artifact without the other is not a valid result
            overlay_path.unlink(missing_ok=True)
            raise

        logging.info(f"Overlay commands: {overlay_path} ({len(seg.segments)} segments)")
        logging.info(f"Subtitles: {subtitle_path}")
        result.overlay_path = overlay_path
        result.subtitle_path = subtitle_path
        return result

    def process_batch(self,
                      items: Iterable[MediaItem],
                      out_dir: Optional[Path] = None,
                      timeline_debug: bool = False) -> List[ItemResult]:
        """
        Processes items serially. A failing item is recorded and the batch
        moves on to the next one.
        """
        items = list(items)
        results = []
        layout_value = self.settings.layout.value

        for item in tqdm(items, desc="Processing", disable=len(items) < 2):
            overlay_path, subtitle_path = output_paths(item, out_dir, layout_value)
            debug_path = None
            if timeline_debug:
                base = out_dir if out_dir is not None else item.media_path.parent
                debug_path = base / config.TIMELINE_DEBUG_FILENAME.format(stem=item.stem)

            try:
                results.append(self.process_item(item, overlay_path, subtitle_path, debug_path))
            except MissingMetadataError as e:
                logging.error(f"{e}")
                results.append(ItemResult(item.media_path, ItemOutcome.FAILED, e.status,
                                          e.stats or ParseStats(), notes=str(e)))
            except DVMetaError as e:
                logging.error(f"Failed to process {item.media_path}: {e}")
                results.append(ItemResult(item.media_path, ItemOutcome.FAILED, TimelineStatus.UNAVAILABLE,
                                          ParseStats(), notes=str(e)))

        done = sum(1 for r in results if r.outcome == ItemOutcome.SUCCESS)
        logging.info(f"Batch complete. {done}/{len(results)} item(s) produced timestamp artifacts.")
        return results
