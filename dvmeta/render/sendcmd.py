"""
Overlay command timeline (ffmpeg sendcmd format).

One line per segment:

    <start_sec> <target> reinit text='<escaped>';

The value goes through two tokenizer passes on the renderer side: the
sendcmd file parser, then the filter's option parser (where ':' separates
options). `escape_text` encodes for both; `get_token` and
`parse_command_line` reproduce the renderer's side for verification.
"""
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .. import config
from ..models import Layout, Segment

WHITESPACES = " \n\t\r"
COMMAND_DELIMS = " \f\t\n\r,;"
OPTION_SPECIALS = "\\:'"


@dataclass(frozen=True)
class OverlayCommand:
    time: float
    actions: Tuple[Tuple[str, str], ...]   # (target, text)


# --- Escaping ---

def escape_option_value(text: str) -> str:
    """Escapes characters the filter option parser treats as syntax."""
    return "".join("\\" + ch if ch in OPTION_SPECIALS else ch for ch in text)


def quote_command_arg(value: str) -> str:
    """Wraps a value in single quotes for the sendcmd file parser."""
    return "'" + value.replace("'", "'\\''") + "'"


def escape_text(text: str) -> str:
    return quote_command_arg(escape_option_value(text))


def get_token(buf: str, terms: str) -> Tuple[str, str]:
    """
    Renderer-side tokenizer: returns (token, remainder).

    Leading whitespace is skipped, a backslash takes the next character
    literally, single quotes delimit a literal run, and unquoted trailing
    whitespace is dropped. Stops at the first unquoted character in `terms`.
    """
    i, n = 0, len(buf)
    while i < n and buf[i] in WHITESPACES:
        i += 1

    out: List[str] = []
    end = 0
    while i < n and buf[i] not in terms:
        c = buf[i]
        i += 1
        if c == "\\" and i < n:
            out.append(buf[i])
            i += 1
            end = len(out)
        elif c == "'":
            while i < n and buf[i] != "'":
                out.append(buf[i])
                i += 1
            if i < n:
                i += 1
            end = len(out)
        else:
            out.append(c)
            if c not in WHITESPACES:
                end = len(out)
    return "".join(out[:end]), buf[i:]


def parse_command_line(line: str) -> Tuple[float, List[Tuple[str, str, str, str]]]:
    """
    Parses one timeline line back into (seconds, [(target, verb, key, value), ...]),
    unescaping values exactly as the renderer would.
    """
    interval, rest = line.strip().split(None, 1)
    seconds = float(interval)

    commands = []
    while True:
        target, rest = get_token(rest, COMMAND_DELIMS)
        verb, rest = get_token(rest, COMMAND_DELIMS)
        arg, rest = get_token(rest, COMMAND_DELIMS)

        key, opt_rest = get_token(arg, "=")
        value = ""
        if opt_rest.startswith("="):
            value, _ = get_token(opt_rest[1:], ":")
        commands.append((target, verb, key, value))

        rest = rest.lstrip(WHITESPACES)
        if not rest.startswith(","):
            break
        rest = rest[1:]
    return seconds, commands


# --- Projection ---

def project_overlay(segments: Sequence[Segment], layout: Layout = Layout.STACKED) -> List[OverlayCommand]:
    """One re-initialization per segment, stamped at the segment start."""
    commands = []
    for seg in segments:
        if layout == Layout.SINGLE:
            actions = ((config.OVERLAY_TARGET, f"{seg.date_part} {seg.time_part}"),)
        else:
            actions = (
                (config.OVERLAY_DATE_TARGET, seg.date_part),
                (config.OVERLAY_TIME_TARGET, seg.time_part),
            )
        commands.append(OverlayCommand(seg.start_sec, actions))
    return commands


def format_command(cmd: OverlayCommand) -> str:
    parts = [
        f"{target} {config.OVERLAY_VERB} {config.OVERLAY_KEY}={escape_text(text)}"
        for target, text in cmd.actions
    ]
    return f"{cmd.time:.6f} " + ", ".join(parts) + ";"


def render_overlay(segments: Sequence[Segment], layout: Layout = Layout.STACKED) -> str:
    lines = [format_command(cmd) for cmd in project_overlay(segments, layout)]
    return "".join(line + "\n" for line in lines)
