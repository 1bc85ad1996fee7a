import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from ..exceptions import ConfigurationError, RecordInvalidError
from ..metadata.extract import split_recording_date_time
from ..models import NormalizedFrame, ParseStats, RawFrameRecord, SequenceKey


def timecode_to_seconds(value: str) -> float:
    """"HH:MM:SS[.frac]" -> seconds. Raises RecordInvalidError on anything else."""
    parts = value.strip().split(':')
    if len(parts) != 3:
        raise RecordInvalidError(f"not a HH:MM:SS timecode: {value!r}")
    try:
        h = int(parts[0])
        m = int(parts[1])
        s = float(parts[2])
    except ValueError:
        raise RecordInvalidError(f"not a HH:MM:SS timecode: {value!r}")
    if h < 0 or m < 0 or s < 0:
        raise RecordInvalidError(f"negative timecode: {value!r}")
    return h * 3600 + m * 60 + s


def sequence_to_seconds(key: SequenceKey, frame_rate: float, index_base: int = 0) -> float:
    """
    Raw (uncorrected) seconds for a sequence key.

    - int: frame index; `index_base` is the index shown at t=0.
    - str with colons: playback timecode.
    - float or other numeric str: playback position in seconds.
    """
    if isinstance(key, bool):
        raise RecordInvalidError(f"unusable sequence key: {key!r}")
    if isinstance(key, int):
        return max(0.0, (key - index_base) / frame_rate)
    if isinstance(key, float):
        if key != key or key < 0:  # NaN or negative
            raise RecordInvalidError(f"unusable playback position: {key!r}")
        return key
    if isinstance(key, str):
        if ':' in key:
            return timecode_to_seconds(key)
        try:
            seconds = float(key)
        except ValueError:
            raise RecordInvalidError(f"unusable sequence key: {key!r}")
        if seconds != seconds or seconds < 0:
            raise RecordInvalidError(f"unusable playback position: {key!r}")
        return seconds
    raise RecordInvalidError(f"unusable sequence key: {key!r}")


class MonotonicClock:
    """
    Turns a raw playback-time stream into a non-decreasing one.

    Tape timecodes reset at recording-session boundaries. On a backward
    jump the offset is recomputed so the new sample lands one step after
    the previous corrected time, where the step is the most recent
    positive forward delta (snapped to whole frames), or one frame if no
    forward delta has been seen yet.
    """

    def __init__(self, frame_rate: float):
        self.frame_rate = frame_rate
        self.frame_step = 1.0 / frame_rate
        self.offset = 0.0
        self.last_valid_step: Optional[float] = None
        self._last_raw: Optional[float] = None
        self._last_corrected: Optional[float] = None

    def _snap(self, delta: float) -> float:
        # Printed timecodes carry rounding noise; real steps are whole frames.
        frames = max(1, round(delta * self.frame_rate))
        return frames / self.frame_rate

    def correct(self, raw: float) -> float:
        if self._last_raw is not None:
            delta = raw - self._last_raw
            if delta < 0:
                step = self.last_valid_step if self.last_valid_step is not None else self.frame_step
                self.offset = (self._last_corrected + step) - raw
                logging.debug(f"Timecode reset at raw={raw:.6f}; new offset {self.offset:.6f}")
            elif delta > 0:
                self.last_valid_step = self._snap(delta)

        corrected = raw + self.offset
        self._last_raw = raw
        self._last_corrected = corrected
        return corrected


def correct_timeline(raw_seconds: Sequence[float], frame_rate: float) -> List[float]:
    clock = MonotonicClock(frame_rate)
    return [clock.correct(v) for v in raw_seconds]


class TimelineNormalizer:
    def __init__(self, frame_rate: float, index_base: int = 0):
        if not frame_rate or frame_rate <= 0:
            raise ConfigurationError(f"Frame rate must be positive, got {frame_rate!r}")
        self.frame_rate = frame_rate
        self.index_base = index_base

    def normalize(self,
                  records: Sequence[RawFrameRecord],
                  stats: Optional[ParseStats] = None) -> Tuple[List[NormalizedFrame], ParseStats]:
        """
        Converts reader rows into scene-time frames, in reader order.

        Rows without a usable date/time or sequence key are skipped and
        counted; they never abort the run.
        """
        clock = MonotonicClock(self.frame_rate)
        frames: List[NormalizedFrame] = []
        skipped = 0

        for record in records:
            try:
                date_part, time_part = split_recording_date_time(record.recording_date_time)
                raw = sequence_to_seconds(record.sequence_key, self.frame_rate, self.index_base)
            except RecordInvalidError as e:
                skipped += 1
                logging.debug(f"Skipping frame record {record.sequence_key!r}: {e}")
                continue

            # Sub-second precision never participates in segment keys
            whole_seconds = time_part.split('.', 1)[0]
            frames.append(NormalizedFrame(clock.correct(raw), date_part, whole_seconds, record.sequence_key))

        stats = replace(stats or ParseStats(),
                        raw_rows=len(records),
                        valid_rows=len(frames),
                        skipped_rows=skipped)
        return frames, stats
