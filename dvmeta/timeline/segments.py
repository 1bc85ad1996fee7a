import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from .. import config
from ..exceptions import ConfigurationError
from ..models import NormalizedFrame, ParseStats, Segment, SegmentationResult, TimelineStatus


class SegmentBuilder:
    """
    Collapses runs of frames sharing one recording date/time into segments.

    The resulting tuple is the single source of truth for both output
    projectors; nothing downstream reorders or edits it.
    """

    def __init__(self, frame_rate: float, min_segments: int = config.DEFAULT_MIN_SEGMENTS):
        if not frame_rate or frame_rate <= 0:
            raise ConfigurationError(f"Frame rate must be positive, got {frame_rate!r}")
        self.frame_step = 1.0 / frame_rate
        self.min_segments = min_segments

    def build(self,
              frames: Sequence[NormalizedFrame],
              stats: Optional[ParseStats] = None) -> SegmentationResult:
        segments: List[Segment] = []
        seen_keys = set()

        current_key = None
        start = 0.0
        date_part = time_part = ""

        for frame in frames:
            key = frame.dt_key
            seen_keys.add(key)
            if key == current_key:
                continue

            if current_key is not None:
                self._close(segments, start, frame.scene_time, date_part, time_part)

            current_key = key
            start = frame.scene_time
            date_part, time_part = frame.date_part, frame.time_part

        # No following frame to bound the last segment
        if current_key is not None:
            self._close(segments, start, start + self.frame_step, date_part, time_part)

        stats = replace(stats or ParseStats(),
                        unique_dt_keys=len(seen_keys),
                        segment_count=len(segments))

        if len(segments) >= self.min_segments:
            status = TimelineStatus.PROCEED
        elif not frames:
            status = TimelineStatus.UNAVAILABLE
        else:
            status = TimelineStatus.INSUFFICIENT
            logging.warning(f"Only {len(segments)} timestamp segment(s) (need {self.min_segments}); "
                            f"overlay would be static")

        return SegmentationResult(tuple(segments), stats, status, tuple(frames))

    def _close(self, segments: List[Segment], start: float, end: float, date_part: str, time_part: str):
        if end <= start:
            # Two keys at the same scene time: the later one wins
            logging.debug(f"Dropping zero-length segment {date_part} {time_part} at {start:.6f}")
            return
        segments.append(Segment(start, end, date_part, time_part))


def build_segments(frames: Sequence[NormalizedFrame], frame_rate: float) -> List[Segment]:
    return list(SegmentBuilder(frame_rate).build(frames).segments)
