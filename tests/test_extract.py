import json
import pytest

from dvmeta.exceptions import RecordInvalidError, SourceUnavailableError
from dvmeta.metadata.extract import (
    FrameExtractor,
    parse_json_text,
    parse_log_text,
    parse_xml_text,
    split_recording_date_time,
)
from dvmeta.models import RawFrameRecord, ReaderKind


def test_split_recording_date_time():
    assert split_recording_date_time("2025-01-01 08:00:00") == ("2025-01-01", "08:00:00")
    assert split_recording_date_time("  2025-01-01   08:00:00.48 ") == ("2025-01-01", "08:00:00.48")
    # ISO form with a zone marker
    assert split_recording_date_time("2025-01-01T08:00:00Z") == ("2025-01-01", "08:00:00")


@pytest.mark.parametrize("bad", ["", "2025-01-01", "yesterday noon", "2025-01-01 8h00"])
def test_split_recording_date_time_rejects_bad_shapes(bad):
    with pytest.raises(RecordInvalidError):
        split_recording_date_time(bad)


def test_parse_log_text_skips_non_frame_lines(log_lines):
    text = "\n".join([
        "frame timecode date time",       # header
        "   ",
        "7 00:00:00;06 2025-01-01",        # too few fields
        "²3 00:00:00;07 2025-01-01 08:00:00",  # not an ASCII frame index
    ] + log_lines)

    records = parse_log_text(text)

    assert records == [
        RawFrameRecord(1, "2025-01-01 08:00:00"),
        RawFrameRecord(2, "2025-01-01 08:00:00"),
        RawFrameRecord(31, "2025-01-01 08:00:01"),
    ]


def test_parse_xml_rdt_attribute_and_nested_elements():
    xml = """<?xml version="1.0" encoding="UTF-8"?>
<dvrescue xmlns="https://mediaarea.net/dvrescue">
  <media>
    <frames>
      <frame n="0" rdt="2025-01-01 08:00:00"/>
      <frame n="1">
        <recordingDateTime><time>08:00:00</time><date>2025-01-01</date></recordingDateTime>
      </frame>
      <frame n="2"/>
      <frame n="3"><recordingDateTime><date>2025-01-01</date><time>08:00:01</time></recordingDateTime></frame>
    </frames>
  </media>
</dvrescue>"""

    records = parse_xml_text(xml.encode("utf-8"))

    assert records == [
        RawFrameRecord(0, "2025-01-01 08:00:00"),
        RawFrameRecord(1, "2025-01-01 08:00:00"),
        RawFrameRecord(3, "2025-01-01 08:00:01"),
    ]


def test_parse_xml_falls_back_to_occurrence_order():
    xml = "<frames><frame rdt='2025-01-01 08:00:00'/><frame/><frame rdt='2025-01-01 08:00:01'/></frames>"

    records = parse_xml_text(xml)

    assert [r.sequence_key for r in records] == [0, 2]


def test_parse_xml_broken_document():
    with pytest.raises(SourceUnavailableError):
        parse_xml_text("<frames><frame rdt='x'>")


def test_parse_json_depth_first():
    doc = {
        "media": {
            "name": "tape01.avi",
            "frames": [
                {"pts": "00:00:00.000", "pts_time": 0.0, "rdt": "2025-01-01 08:00:00"},
                {"pts_time": 0.5, "recording_date_time": {"time": "08:00:00", "date": "2025-01-01"}},
                {"pts_time": 1.0},                      # no RDT
                {"blocks": [{"position": "00:00:01.000", "rdt": "2025-01-01 08:00:01"}]},
            ],
        }
    }

    records = parse_json_text(json.dumps(doc))

    assert records == [
        RawFrameRecord("00:00:00.000", "2025-01-01 08:00:00"),
        RawFrameRecord(0.5, "2025-01-01 08:00:00"),
        RawFrameRecord("00:00:01.000", "2025-01-01 08:00:01"),
    ]


def test_select_prefers_first_source_with_enough_rows(tmp_path, write_log):
    sparse_xml = tmp_path / "a.xml"
    sparse_xml.write_text("<frames><frame rdt='2025-01-01 08:00:00'/></frames>", encoding="utf-8")
    log = write_log(tmp_path / "a.log")

    result = FrameExtractor().select({ReaderKind.MARKUP: sparse_xml, ReaderKind.LOG: log})

    assert result.kind == ReaderKind.LOG
    assert result.source_path == log
    assert len(result.records) == 3
    assert result.attempts == {ReaderKind.MARKUP: 1, ReaderKind.LOG: 3}


def test_select_uses_richest_sparse_source(tmp_path, write_log, log_lines):
    xml = tmp_path / "a.xml"
    xml.write_text("<frames><frame rdt='2025-01-01 08:00:00'/><frame rdt='2025-01-01 08:00:01'/></frames>",
                   encoding="utf-8")
    log = write_log(tmp_path / "a.log", log_lines[:1])

    result = FrameExtractor().select({ReaderKind.MARKUP: xml, ReaderKind.LOG: log})

    assert result.available
    assert result.kind == ReaderKind.MARKUP
    assert len(result.records) == 2


def test_select_treats_broken_sources_as_empty(tmp_path):
    empty_xml = tmp_path / "a.xml"
    empty_xml.write_text("   \n", encoding="utf-8")
    broken_json = tmp_path / "a.json"
    broken_json.write_text("{not json", encoding="utf-8")
    missing_log = tmp_path / "missing.log"

    result = FrameExtractor().select({
        ReaderKind.MARKUP: empty_xml,
        ReaderKind.NESTED: broken_json,
        ReaderKind.LOG: missing_log,
    })

    assert not result.available
    assert result.kind is None
    assert result.attempts == {ReaderKind.MARKUP: 0, ReaderKind.NESTED: 0, ReaderKind.LOG: 0}


def test_read_missing_source_raises(tmp_path):
    with pytest.raises(SourceUnavailableError):
        FrameExtractor().read(ReaderKind.LOG, tmp_path / "nope.log")
