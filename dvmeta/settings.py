"""
Per-run tunables. Defaults come from config; anything here can be
overridden from the CLI.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from . import config
from .exceptions import ConfigurationError
from .models import Layout, MissingMetaPolicy, ReaderKind
from .policy import normalize_policy


@dataclass
class PipelineSettings:
    frame_rate: Optional[float] = None
    layout: Layout = Layout.STACKED
    missing_meta: MissingMetaPolicy = MissingMetaPolicy.SKIP_BURNIN_CONVERT
    min_source_rows: int = config.DEFAULT_MIN_SOURCE_ROWS
    min_segments: int = config.DEFAULT_MIN_SEGMENTS
    reader_priority: Tuple[ReaderKind, ...] = config.READER_PRIORITY
    index_base: Dict[ReaderKind, int] = field(default_factory=lambda: dict(config.DEFAULT_INDEX_BASE))
    font_name: str = config.DEFAULT_FONT_NAME

    def index_base_for(self, kind: Optional[ReaderKind]) -> int:
        if kind is None:
            return 0
        return self.index_base.get(kind, 0)

    def validate(self, require_frame_rate: bool = True):
        """
        Raises ConfigurationError for anything that would make the run meaningless.

        With require_frame_rate=False a missing frame rate is allowed (it
        will be probed per item), but a bad explicit one is still rejected.
        """
        if self.frame_rate is None:
            if require_frame_rate:
                raise ConfigurationError("Frame rate is required.")
        else:
            self.frame_rate = check_frame_rate(self.frame_rate)

        if not isinstance(self.layout, Layout):
            try:
                self.layout = Layout(str(self.layout).lower())
            except ValueError:
                raise ConfigurationError(f"Unknown layout: {self.layout}")

        self.missing_meta = normalize_policy(self.missing_meta)

        if self.min_source_rows < 1:
            raise ConfigurationError("min_source_rows must be at least 1.")
        if self.min_segments < 1:
            raise ConfigurationError("min_segments must be at least 1.")
        if not self.reader_priority:
            raise ConfigurationError("reader_priority must name at least one reader.")


def check_frame_rate(value) -> float:
    if value is None:
        raise ConfigurationError("Frame rate is required.")
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Frame rate is not a number: {value!r}")
    if not rate > 0:
        raise ConfigurationError(f"Frame rate must be positive, got {rate}")
    return rate
