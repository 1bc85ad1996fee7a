import json
import subprocess
import pytest

import dvmeta.metadata.probe as probe_module
from dvmeta.exceptions import FrameRateDetectionError
from dvmeta.metadata.probe import FrameRateProbe, detect_frame_rate, parse_rate


# Mock MediaInfo class structure
class MockTrack:
    def __init__(self, track_type, **kwargs):
        self.track_type = track_type
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockMediaInfo:
    tracks_for_test = []

    def __init__(self, tracks):
        self.tracks = tracks

    @classmethod
    def parse(cls, path):
        return cls(cls.tracks_for_test)


@pytest.mark.parametrize("value, expected", [
    ("30000/1001", 30000 / 1001),
    ("25/1", 25.0),
    ("29.970", 29.97),
    (25, 25.0),
])
def test_parse_rate(value, expected):
    assert parse_rate(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", [None, "", "0/0", "0", "-25", "N/A", True])
def test_parse_rate_unusable(value):
    assert parse_rate(value) is None


def test_detect_via_mediainfo(monkeypatch, tmp_path):
    MockMediaInfo.tracks_for_test = [
        MockTrack("General"),
        MockTrack("Video", frame_rate="29.970"),
    ]
    monkeypatch.setattr(probe_module, "MediaInfo", MockMediaInfo)

    def fail(*args, **kwargs):
        raise AssertionError("ffprobe should not run")
    monkeypatch.setattr(probe_module.subprocess, "check_output", fail)

    assert FrameRateProbe().detect(tmp_path / "tape.avi") == pytest.approx(29.97)


def test_detect_uses_original_frame_rate(monkeypatch, tmp_path):
    MockMediaInfo.tracks_for_test = [MockTrack("Video", frame_rate=None, original_frame_rate="25.000")]
    monkeypatch.setattr(probe_module, "MediaInfo", MockMediaInfo)

    assert detect_frame_rate(tmp_path / "tape.avi") == 25.0


def test_detect_falls_back_to_ffprobe(monkeypatch, tmp_path):
    monkeypatch.setattr(probe_module, "MediaInfo", None)
    calls = []

    def fake_check_output(cmd, **kwargs):
        calls.append(cmd)
        return json.dumps({"streams": [{"codec_type": "video", "avg_frame_rate": "0/0",
                                        "r_frame_rate": "30000/1001"}]})
    monkeypatch.setattr(probe_module.subprocess, "check_output", fake_check_output)

    rate = FrameRateProbe(ffprobe_bin="my-ffprobe").detect(tmp_path / "tape.avi")

    assert rate == pytest.approx(29.97, abs=1e-3)
    assert calls[0][0] == "my-ffprobe"
    assert str(tmp_path / "tape.avi") in calls[0]


def test_detect_fails_when_nothing_works(monkeypatch, tmp_path):
    MockMediaInfo.tracks_for_test = [MockTrack("Audio")]
    monkeypatch.setattr(probe_module, "MediaInfo", MockMediaInfo)

    def broken(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd)
    monkeypatch.setattr(probe_module.subprocess, "check_output", broken)

    with pytest.raises(FrameRateDetectionError):
        FrameRateProbe().detect(tmp_path / "tape.avi")
