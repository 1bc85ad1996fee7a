"""
Configuration constants for the DV metadata burn-in pipeline.
"""
from .models import ReaderKind

# --- Media Discovery ---
MEDIA_EXTS = {'.avi', '.dv'}

# Sidecar names checked per reader kind, in order. "{stem}" is the media file stem.
SIDECAR_PATTERNS = {
    ReaderKind.MARKUP: ["{stem}.dvrescue.xml", "{stem}.xml"],
    ReaderKind.NESTED: ["{stem}.dvrescue.json", "{stem}.json"],
    ReaderKind.LOG: ["{stem}.dvrescue.log", "{stem}.log"],
}

# --- Frame Source Selection ---
# Most structured first. The line log is the last resort.
READER_PRIORITY = (ReaderKind.MARKUP, ReaderKind.NESTED, ReaderKind.LOG)

# A source must produce at least this many rows to win outright.
DEFAULT_MIN_SOURCE_ROWS = 3

# Frame index that maps to scene time 0.0 for each index-keyed reader.
# dvrescue logs count from 1; XML "n" attributes (and occurrence order) from 0.
DEFAULT_INDEX_BASE = {
    ReaderKind.LOG: 1,
    ReaderKind.MARKUP: 0,
}

# --- Markup (XML) ---
FRAME_TAG = "frame"
FRAME_RDT_ATTR = "rdt"
FRAME_SEQUENCE_ATTRS = ("n", "frame", "index")
RDT_ELEMENT = "recordingDateTime"

# --- Nested (JSON) ---
# Playback position candidates. A colon timecode string is preferred over raw seconds.
POSITION_FIELDS = ("pts", "pts_time", "position", "playback_position", "time")
RDT_FIELDS = ("rdt", "recording_date_time", "recordingDateTime")

# --- Segmentation ---
# Fewer segments than this renders a static timestamp for the whole clip.
DEFAULT_MIN_SEGMENTS = 2

# --- Overlay Commands (sendcmd) ---
OVERLAY_TARGET = "drawtext@dvmeta"
OVERLAY_DATE_TARGET = "drawtext@dvdate"
OVERLAY_TIME_TARGET = "drawtext@dvtime"
OVERLAY_VERB = "reinit"
OVERLAY_KEY = "text"

# --- Subtitles (ASS) ---
ASS_TITLE = "DV Metadata Burn-In"
ASS_PLAY_RES = (720, 480)
ASS_STYLE_NAME = "DVOSD"
DEFAULT_FONT_NAME = "UAV OSD Mono"
ASS_FONT_SIZE = 24
ASS_MARGIN_V = 20

# --- Artifacts ---
OVERLAY_FILENAME = "{stem}.timestamp.cmd"
SUBTITLE_FILENAME = "{stem}_dvmeta_{layout}.ass"
TIMELINE_DEBUG_FILENAME = "{stem}.timeline.debug.tsv"
LOG_FILENAME = "dvmeta.log"

TIMELINE_DEBUG_HEADER = ["frame_index", "t_sec", "date_part", "time_part", "dt_key", "segment_change"]
