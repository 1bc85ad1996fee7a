import pytest

from dvmeta import config
from dvmeta.models import Layout, Segment
from dvmeta.render.ass import (
    project_cues,
    render_ass,
    render_header,
    seconds_to_ass_time,
)
from dvmeta.render.sendcmd import (
    OverlayCommand,
    escape_text,
    format_command,
    get_token,
    parse_command_line,
    project_overlay,
    render_overlay,
)

SEGMENTS = (
    Segment(0.0, 1.0, "2025-01-01", "08:00:00"),
    Segment(1.0, 2.5, "2025-01-01", "08:00:01"),
    Segment(2.5, 2.5 + 1 / 30, "2025-01-02", "23:59:59"),
)


# --- Overlay commands ---

@pytest.mark.parametrize("text", [
    "08:00:01",
    "2025-01-01 08:00:01",
    "it's 12:00",
    "back\\slash",
    "a,b;c",
])
def test_escaped_text_parses_back(text):
    line = format_command(OverlayCommand(1.5, ((config.OVERLAY_TARGET, text),)))

    seconds, commands = parse_command_line(line)

    assert seconds == 1.5
    assert commands == [(config.OVERLAY_TARGET, "reinit", "text", text)]


def test_time_colons_are_escaped():
    assert escape_text("08:00:01") == "'08\\:00\\:01'"


def test_get_token_stops_at_unquoted_terminator():
    token, rest = get_token("  'a;b' c;d", " ;")
    assert token == "a;b"
    assert rest == " c;d"


def test_single_layout_line():
    text = render_overlay(SEGMENTS[:1], Layout.SINGLE)
    assert text == "0.000000 drawtext@dvmeta reinit text='2025-01-01 08\\:00\\:00';\n"


def test_stacked_layout_targets_both_lines():
    line = render_overlay(SEGMENTS[1:2], Layout.STACKED).strip()

    seconds, commands = parse_command_line(line)

    assert seconds == 1.0
    assert commands == [
        (config.OVERLAY_DATE_TARGET, "reinit", "text", "2025-01-01"),
        (config.OVERLAY_TIME_TARGET, "reinit", "text", "08:00:01"),
    ]


def test_one_command_per_segment():
    text = render_overlay(SEGMENTS)
    assert text.count("\n") == len(SEGMENTS)
    assert render_overlay(()) == ""


# --- Subtitles ---

@pytest.mark.parametrize("sec, expected", [
    (0.0, "0:00:00.00"),
    (1.0 + 1 / 30, "0:00:01.03"),
    (3723.456, "1:02:03.46"),
    (59.999, "0:01:00.00"),
    (-2.0, "0:00:00.00"),
])
def test_seconds_to_ass_time(sec, expected):
    assert seconds_to_ass_time(sec) == expected


def test_cue_text_by_layout():
    stacked = project_cues(SEGMENTS[:1], Layout.STACKED)[0]
    single = project_cues(SEGMENTS[:1], Layout.SINGLE)[0]

    assert stacked.text == "2025-01-01\\N08:00:00"
    assert single.text == "2025-01-01  08:00:00"
    assert (stacked.start, stacked.end) == (0.0, 1.0)


def test_render_ass_document():
    doc = render_ass(SEGMENTS, Layout.STACKED, font_name="Mono, Bold")
    lines = doc.splitlines()

    assert lines[0] == "[Script Info]"
    assert "[V4+ Styles]" in lines
    assert "[Events]" in lines
    assert any(l.startswith("Style: DVOSD,Mono  Bold,24,") for l in lines)

    dialogues = [l for l in lines if l.startswith("Dialogue:")]
    assert dialogues[0] == "Dialogue: 0,0:00:00.00,0:00:01.00,DVOSD,,0,0,20,,2025-01-01\\N08:00:00"
    assert len(dialogues) == len(SEGMENTS)


def test_header_uses_default_font():
    assert f"Style: DVOSD,{config.DEFAULT_FONT_NAME}," in render_header()


# --- Synchronization ---

@pytest.mark.parametrize("layout", [Layout.STACKED, Layout.SINGLE])
def test_overlay_and_cues_start_together(layout):
    commands = project_overlay(SEGMENTS, layout)
    cues = project_cues(SEGMENTS, layout)

    assert [c.time for c in commands] == [c.start for c in cues]

    # Same check on the rendered files
    overlay_starts = [parse_command_line(l)[0] for l in render_overlay(SEGMENTS, layout).splitlines()]
    cue_starts = [l.split(",")[1] for l in render_ass(SEGMENTS, layout).splitlines()
                  if l.startswith("Dialogue:")]
    assert [seconds_to_ass_time(t) for t in overlay_starts] == cue_starts
