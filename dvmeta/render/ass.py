from dataclasses import dataclass
from typing import List, Sequence

from .. import config
from ..models import Layout, Segment

EVENT_FORMAT = "Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"

STYLE_FORMAT = ("Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, "
                "Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, "
                "Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding")


@dataclass(frozen=True)
class Cue:
    start: float
    end: float
    text: str


def seconds_to_ass_time(sec: float) -> str:
    """
    Seconds -> "H:MM:SS.cc".

    Negative input clamps to zero. Rounding happens once, on the
    centisecond total, so 59.999 becomes 0:01:00.00 rather than 0:00:60.00.
    """
    if sec is None or sec < 0:
        sec = 0.0
    total_cs = int(round(sec * 100))
    h, rem = divmod(total_cs, 360000)
    m, rem = divmod(rem, 6000)
    s, cs = divmod(rem, 100)
    return f"{h:d}:{m:02d}:{s:02d}.{cs:02d}"


def escape_ass_text(text: str) -> str:
    # Braces open override blocks; raw newlines would end the Dialogue line.
    return (text.replace("{", "\\{")
                .replace("}", "\\}")
                .replace("\r", " ")
                .replace("\n", " "))


def safe_font_name(name: str) -> str:
    # Commas separate Style fields
    return (name or config.DEFAULT_FONT_NAME).replace(",", " ").strip()


def project_cues(segments: Sequence[Segment], layout: Layout = Layout.STACKED) -> List[Cue]:
    """One cue per segment spanning [start_sec, end_sec)."""
    cues = []
    for seg in segments:
        date_text = escape_ass_text(seg.date_part)
        time_text = escape_ass_text(seg.time_part)
        if layout == Layout.SINGLE:
            text = f"{date_text}  {time_text}"
        else:
            text = f"{date_text}\\N{time_text}"
        cues.append(Cue(seg.start_sec, seg.end_sec, text))
    return cues


def render_header(font_name: str = config.DEFAULT_FONT_NAME) -> str:
    res_x, res_y = config.ASS_PLAY_RES
    style = (f"Style: {config.ASS_STYLE_NAME},{safe_font_name(font_name)},{config.ASS_FONT_SIZE},"
             f"&H00FFFFFF,&H00000000,&H00000000,&H00000000,-1,0,0,0,100,100,0,0,0,0,0,2,"
             f"20,20,{config.ASS_MARGIN_V},1")
    lines = [
        "[Script Info]",
        f"Title: {config.ASS_TITLE}",
        "ScriptType: v4.00+",
        "Collisions: Normal",
        f"PlayResX: {res_x}",
        f"PlayResY: {res_y}",
        "Timer: 100.0000",
        "",
        "[V4+ Styles]",
        f"Format: {STYLE_FORMAT}",
        style,
        "",
        "[Events]",
        f"Format: {EVENT_FORMAT}",
    ]
    return "\n".join(lines) + "\n"


def format_dialogue(cue: Cue) -> str:
    return (f"Dialogue: 0,{seconds_to_ass_time(cue.start)},{seconds_to_ass_time(cue.end)},"
            f"{config.ASS_STYLE_NAME},,0,0,{config.ASS_MARGIN_V},,{cue.text}")


def render_ass(segments: Sequence[Segment],
               layout: Layout = Layout.STACKED,
               font_name: str = config.DEFAULT_FONT_NAME) -> str:
    body = "".join(format_dialogue(cue) + "\n" for cue in project_cues(segments, layout))
    return render_header(font_name) + body
