import pytest
from pathlib import Path

# Frame index, SMPTE timecode, recording date, recording time
LOG_LINES = [
    "1 00:00:00;00 2025-01-01 08:00:00",
    "2 00:00:00;01 2025-01-01 08:00:00",
    "31 00:00:01;00 2025-01-01 08:00:01",
]


@pytest.fixture
def log_lines():
    return list(LOG_LINES)


@pytest.fixture
def write_log():
    """Returns a helper that writes frame log lines to a path."""
    def _write(path: Path, lines=LOG_LINES) -> Path:
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def capture(tmp_path, write_log):
    """A DV capture with a text log sidecar that yields two segments at 30 fps."""
    media = tmp_path / "tape01.avi"
    media.write_bytes(b"\x00" * 16)
    write_log(tmp_path / "tape01.dvrescue.log")
    return media


@pytest.fixture
def bare_capture(tmp_path):
    """A DV capture with no metadata sidecars at all."""
    media = tmp_path / "tape02.avi"
    media.write_bytes(b"\x00" * 16)
    return media


@pytest.fixture
def out_dir(tmp_path):
    d = tmp_path / "out"
    d.mkdir()
    return d
