import json
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .. import config
from ..exceptions import RecordInvalidError, SourceUnavailableError
from ..models import RawFrameRecord, ReaderKind, ReaderResult

DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_RE = re.compile(r'^\d{1,2}:\d{2}:\d{2}(?:\.\d+)?$')
FRAME_INDEX_RE = re.compile(r"^[0-9]+$")


def split_recording_date_time(rdt: str) -> Tuple[str, str]:
    """
    Splits "YYYY-MM-DD HH:MM:SS[.frac]" into (date_part, time_part).

    Only the shape is checked; a camcorder that recorded month 13 is
    not our problem. Raises RecordInvalidError when either part is missing.
    """
    if not rdt:
        raise RecordInvalidError("empty recording date/time")

    clean = rdt.strip()
    parts = clean.split(None, 1)
    if len(parts) == 1 and 'T' in clean:
        # ISO style from JSON sources
        parts = clean.split('T', 1)
    if len(parts) != 2:
        raise RecordInvalidError(f"no date/time split in {rdt!r}")

    date_part, time_part = parts[0].strip(), parts[1].strip()
    # Drop trailing zone markers ("Z", "+09:00") some writers append
    time_part = re.split(r'[Z+]|\s', time_part, maxsplit=1)[0]

    if not DATE_RE.match(date_part) or not TIME_RE.match(time_part):
        raise RecordInvalidError(f"unexpected date/time shape in {rdt!r}")
    return date_part, time_part


def is_usable(record: RawFrameRecord) -> bool:
    try:
        split_recording_date_time(record.recording_date_time)
    except RecordInvalidError:
        return False
    return True


# --- Format Parsers ---

def _local_name(tag: Any) -> str:
    # ElementTree spells namespaced tags "{uri}name"
    if not isinstance(tag, str):
        return ""
    return tag.rsplit('}', 1)[-1]


def _find_child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for child in elem.iter():
        if child is not elem and _local_name(child.tag) == name:
            return child
    return None


def _xml_rdt(frame: ET.Element) -> Optional[str]:
    combined = frame.get(config.FRAME_RDT_ATTR)
    if combined and combined.strip():
        return combined.strip()

    holder = _find_child(frame, config.RDT_ELEMENT)
    if holder is None:
        return None

    # <date> and <time> may appear in either order
    date_el = _find_child(holder, "date")
    time_el = _find_child(holder, "time")
    if date_el is None or time_el is None:
        return None
    date = (date_el.text or "").strip()
    time = (time_el.text or "").strip()
    if not date or not time:
        return None
    return f"{date} {time}"


def _xml_sequence(frame: ET.Element, occurrence: int) -> int:
    for attr in config.FRAME_SEQUENCE_ATTRS:
        val = frame.get(attr)
        if val is not None and FRAME_INDEX_RE.match(val.strip()):
            return int(val.strip())
    return occurrence


def parse_xml_text(text: Union[str, bytes]) -> List[RawFrameRecord]:
    """Frame records from a dvrescue-style XML document."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise SourceUnavailableError(f"XML parse error: {e}")

    records = []
    occurrence = 0
    for elem in root.iter():
        if _local_name(elem.tag) != config.FRAME_TAG:
            continue
        rdt = _xml_rdt(elem)
        if rdt:
            records.append(RawFrameRecord(_xml_sequence(elem, occurrence), rdt))
        occurrence += 1
    return records


def parse_log_text(text: str) -> List[RawFrameRecord]:
    """
    Frame records from a dvrescue text log.

    Expected lines look like:
        1 00:02:41;06 2025-11-11 08:29:35
    Field 1 is the frame index, fields 3 and 4 the date and time. The
    SMPTE timecode in field 2 is ignored.
    """
    records = []
    for line in text.splitlines():
        fields = line.strip().split()
        if len(fields) < 4 or not FRAME_INDEX_RE.match(fields[0]):
            continue
        records.append(RawFrameRecord(int(fields[0]), f"{fields[2]} {fields[3]}"))
    return records


def _json_position(node: Dict[str, Any]) -> Optional[Any]:
    """Colon timecode if the node has one, otherwise raw numeric seconds."""
    numeric = None
    for name in config.POSITION_FIELDS:
        if name not in node:
            continue
        val = node[name]
        if isinstance(val, str) and ':' in val:
            return val.strip()
        if numeric is None and not isinstance(val, bool):
            try:
                numeric = float(val)
            except (TypeError, ValueError):
                continue
    return numeric


def _json_rdt(node: Dict[str, Any]) -> Optional[str]:
    for name in config.RDT_FIELDS:
        val = node.get(name)
        if isinstance(val, str) and val.strip():
            return val.strip()
        if isinstance(val, dict) and val.get("date") and val.get("time"):
            return f"{str(val['date']).strip()} {str(val['time']).strip()}"
    return None


def _walk_json(node: Any, out: List[RawFrameRecord]):
    if isinstance(node, dict):
        has_position = any(name in node for name in config.POSITION_FIELDS)
        has_rdt = any(name in node for name in config.RDT_FIELDS)
        if has_position and has_rdt:
            position = _json_position(node)
            rdt = _json_rdt(node)
            if position is not None and rdt:
                out.append(RawFrameRecord(position, rdt))
            return
        for value in node.values():
            _walk_json(value, out)
    elif isinstance(node, list):
        for value in node:
            _walk_json(value, out)


def parse_json_text(text: str) -> List[RawFrameRecord]:
    """Depth-first search for nodes carrying both a playback position and an RDT."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SourceUnavailableError(f"JSON parse error: {e}")

    records: List[RawFrameRecord] = []
    _walk_json(data, records)
    return records


PARSERS: Dict[ReaderKind, Callable[[str], List[RawFrameRecord]]] = {
    ReaderKind.MARKUP: parse_xml_text,
    ReaderKind.NESTED: parse_json_text,
    ReaderKind.LOG: parse_log_text,
}


class FrameExtractor:
    """
    Unified interface for pulling per-frame RDT records out of the
    metadata analyzer's outputs.

    Strategies (tried in priority order, first sufficiently rich wins):
      - XML:  <frame rdt="..."> or nested <recordingDateTime>.
      - JSON: any node with a playback position and an RDT field.
      - Log:  whitespace separated per-frame lines.
    """

    def read(self, kind: ReaderKind, path: Path) -> List[RawFrameRecord]:
        """Reads one source. Raises SourceUnavailableError for missing/empty/broken sources."""
        if path is None or not path.exists():
            raise SourceUnavailableError(f"{kind.value} source missing: {path}")

        try:
            data = path.read_bytes()
        except OSError as e:
            raise SourceUnavailableError(f"{kind.value} source unreadable: {path}: {e}")

        if not data.strip():
            raise SourceUnavailableError(f"{kind.value} source empty: {path}")

        if kind == ReaderKind.MARKUP:
            # Let the XML parser honour the document's own encoding declaration
            return parse_xml_text(data)
        return PARSERS[kind](data.decode("utf-8", errors="replace"))

    def select(self,
               sources: Dict[ReaderKind, Path],
               min_rows: int = config.DEFAULT_MIN_SOURCE_ROWS,
               priority: Iterable[ReaderKind] = config.READER_PRIORITY) -> ReaderResult:
        """
        Tries each available source in priority order and returns the first
        one with at least `min_rows` usable rows.

        If none reaches the threshold, the richest source that produced any
        usable row is used. If nothing produced a row the result has
        kind=None, which callers treat as "no metadata" (not an error).
        """
        attempts: Dict[ReaderKind, int] = {}
        fallback: Optional[ReaderResult] = None

        for kind in priority:
            path = sources.get(kind)
            if path is None:
                continue

            try:
                records = self.read(kind, path)
            except SourceUnavailableError as e:
                logging.debug(f"Frame source {kind.value} unavailable: {e}")
                attempts[kind] = 0
                continue

            usable = sum(1 for r in records if is_usable(r))
            attempts[kind] = usable
            logging.debug(f"RDT rows from {kind.value} ({path}): {usable} usable of {len(records)}")

            if usable >= min_rows:
                return ReaderResult(kind, records, path, attempts)

            logging.debug(f"{kind.value} RDT too sparse ({usable} < {min_rows}), trying next source")
            if usable > 0 and (fallback is None or usable > attempts[fallback.kind]):
                fallback = ReaderResult(kind, records, path)

        if fallback is not None:
            logging.warning(f"No frame source reached {min_rows} rows; using {fallback.kind.value} "
                            f"with {attempts[fallback.kind]} rows")
            fallback.attempts = attempts
            return fallback

        logging.warning("Unable to derive an RDT timeline from any metadata source")
        return ReaderResult(None, [], None, attempts)
