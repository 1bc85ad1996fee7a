import json
import logging
import subprocess
from fractions import Fraction
from pathlib import Path
from typing import Any, Optional

from ..exceptions import FrameRateDetectionError

# Type hint 'Any' keeps the checker quiet when the library is absent
MediaInfo: Any = None
try:
    from pymediainfo import MediaInfo
except ImportError:
    MediaInfo = None


def parse_rate(value) -> Optional[float]:
    """
    Parses a frame rate as reported by probing tools.

    Accepts rationals ("30000/1001"), decimals ("29.970") and numbers.
    Returns None for anything unusable (including "0/0").
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        if '/' in text:
            num, den = text.split('/', 1)
            if float(den) == 0:
                return None
            rate = float(Fraction(num.strip()) / Fraction(den.strip()))
        else:
            rate = float(text)
    except (ValueError, ZeroDivisionError):
        return None
    return rate if rate > 0 else None


class FrameRateProbe:
    """
    Works out the frame rate of a capture.

    Strategies:
      - pymediainfo (fast, no subprocess).
      - ffprobe JSON stream dump (robust fallback, requires system install).
    """

    def __init__(self, ffprobe_bin: str = "ffprobe"):
        self.ffprobe_bin = ffprobe_bin

    def detect(self, path: Path) -> float:
        # Strategy 1: MediaInfo
        if MediaInfo is not None:
            try:
                rate = self._rate_from_mediainfo(path)
                if rate:
                    logging.debug(f"Detected FPS via MediaInfo for {path}: {rate:.6f}")
                    return rate
            except Exception as e:
                logging.debug(f"MediaInfo failed for {path}: {e}")

        # Strategy 2: ffprobe
        try:
            rate = self._rate_from_ffprobe(path)
            if rate:
                logging.debug(f"Detected FPS via ffprobe for {path}: {rate:.6f}")
                return rate
        except (OSError, subprocess.CalledProcessError, ValueError) as e:
            logging.debug(f"ffprobe failed for {path}: {e}")

        raise FrameRateDetectionError(f"Unable to detect FPS for {path}")

    def _rate_from_mediainfo(self, path: Path) -> Optional[float]:
        mi = MediaInfo.parse(str(path))
        for track in mi.tracks:
            if track.track_type != "Video":
                continue
            rate = parse_rate(getattr(track, "frame_rate", None))
            if rate:
                return rate
            # Some containers only expose the original (pre-pulldown) rate
            rate = parse_rate(getattr(track, "original_frame_rate", None))
            if rate:
                return rate
        return None

    def _rate_from_ffprobe(self, path: Path) -> Optional[float]:
        cmd = [
            self.ffprobe_bin,
            "-v", "quiet",
            "-print_format", "json",
            "-show_streams",
            "-select_streams", "v:0",
            str(path),
        ]
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        data = json.loads(out)

        for stream in data.get("streams", []):
            if stream.get("codec_type", "video") != "video":
                continue
            for field in ("avg_frame_rate", "r_frame_rate"):
                rate = parse_rate(stream.get(field))
                if rate:
                    return rate
        return None


def detect_frame_rate(path: Path, ffprobe_bin: str = "ffprobe") -> float:
    return FrameRateProbe(ffprobe_bin).detect(path)
