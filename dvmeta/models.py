from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union


class ReaderKind(str, Enum):
    """The closed set of frame metadata formats we know how to read."""
    MARKUP = "xml"
    NESTED = "json"
    LOG = "log"


class Layout(str, Enum):
    STACKED = "stacked"   # date above time
    SINGLE = "single"     # date and time on one line


class MissingMetaPolicy(str, Enum):
    ERROR = "error"
    SKIP_BURNIN_CONVERT = "skip_burnin_convert"
    SKIP_FILE = "skip_file"


class TimelineStatus(str, Enum):
    PROCEED = "proceed"
    INSUFFICIENT = "insufficient"
    UNAVAILABLE = "unavailable"


class ItemOutcome(str, Enum):
    SUCCESS = "success"
    DELEGATE_CONVERT = "delegate_convert"   # hand off to plain transcoding
    SKIPPED = "skipped"                     # handled, no output
    FAILED = "failed"


SequenceKey = Union[int, float, str]


@dataclass(frozen=True)
class RawFrameRecord:
    """
    One frame as reported by a metadata source.

    sequence_key is a frame index (int) for the log and markup readers,
    or a playback position (timecode string or float seconds) for the
    nested reader.
    """
    sequence_key: SequenceKey
    recording_date_time: str


@dataclass(frozen=True)
class NormalizedFrame:
    scene_time: float
    date_part: str
    time_part: str          # whole seconds only
    sequence_key: SequenceKey = None

    @property
    def dt_key(self) -> str:
        return f"{self.date_part} {self.time_part}"


@dataclass(frozen=True)
class Segment:
    start_sec: float
    end_sec: float
    date_part: str
    time_part: str

    @property
    def dt_key(self) -> str:
        return f"{self.date_part} {self.time_part}"

    @property
    def duration(self) -> float:
        return self.end_sec - self.start_sec


@dataclass(frozen=True)
class ParseStats:
    """
    Diagnostic counters threaded through reader -> normalizer -> builder.
    Each stage returns an updated copy instead of mutating shared state.
    """
    raw_rows: int = 0
    valid_rows: int = 0
    skipped_rows: int = 0
    unique_dt_keys: int = 0
    segment_count: int = 0


@dataclass
class ReaderResult:
    """What the frame source selector hands to the normalizer."""
    kind: Optional[ReaderKind]
    records: List[RawFrameRecord] = field(default_factory=list)
    source_path: Optional[Path] = None
    attempts: Dict[ReaderKind, int] = field(default_factory=dict)  # rows seen per source tried

    @property
    def available(self) -> bool:
        return self.kind is not None and len(self.records) > 0


@dataclass(frozen=True)
class SegmentationResult:
    segments: Tuple[Segment, ...]
    stats: ParseStats
    status: TimelineStatus
    frames: Tuple[NormalizedFrame, ...] = ()


@dataclass
class MediaItem:
    """A media file plus whichever metadata sidecars were found for it."""
    media_path: Path
    sources: Dict[ReaderKind, Path] = field(default_factory=dict)

    @property
    def stem(self) -> str:
        return self.media_path.stem


@dataclass
class ItemResult:
    media_path: Path
    outcome: ItemOutcome
    status: TimelineStatus
    stats: ParseStats
    frame_source: Optional[ReaderKind] = None
    overlay_path: Optional[Path] = None
    subtitle_path: Optional[Path] = None
    notes: str = ""
