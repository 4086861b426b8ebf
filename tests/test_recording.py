"""Tests for recording sinks."""

import json

from devti.config import DevtiConfig
from devti.recording import EmptyRecording, JsonlRecording, recording_for, safe_write
from devti.types import RecordingEntry


class TestJsonlRecording:
    def test_appends_lines(self, tmp_path):
        path = tmp_path / "nested" / "recording.jsonl"
        rec = JsonlRecording(path)
        rec.write(RecordingEntry("p1", "r1"))
        rec.write(RecordingEntry("p2", "rëssponse"))

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["instruction"] == "p1"
        assert first["output"] == "r1"
        assert "_ts" in first
        assert "rëssponse" in lines[1]

    def test_read_all_skips_bad_lines(self, tmp_path):
        path = tmp_path / "recording.jsonl"
        rec = JsonlRecording(path)
        rec.write(RecordingEntry("p", "r"))
        with open(path, "a", encoding="utf-8") as f:
            f.write("not json\n\n")
        assert rec.read_all() == [RecordingEntry("p", "r")]

    def test_read_all_missing_file(self, tmp_path):
        assert JsonlRecording(tmp_path / "none.jsonl").read_all() == []

    def test_construction_touches_nothing(self, tmp_path):
        JsonlRecording(tmp_path / "later" / "recording.jsonl")
        assert not (tmp_path / "later").exists()


class TestRecordingFor:
    def test_disabled_by_default(self):
        assert isinstance(recording_for(DevtiConfig()), EmptyRecording)

    def test_enabled(self, tmp_path):
        cfg = DevtiConfig.model_validate({
            "coder": {"recording_in_local": True, "recording_path": str(tmp_path / "r.jsonl")},
        })
        rec = recording_for(cfg)
        assert isinstance(rec, JsonlRecording)
        assert rec.path == tmp_path / "r.jsonl"


class TestSafeWrite:
    def test_swallows_sink_errors(self):
        class Broken:
            def write(self, entry):
                raise RuntimeError("nope")

        safe_write(Broken(), RecordingEntry("p", "r"))

    def test_swallows_unusable_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        rec = JsonlRecording(blocker / "sub" / "r.jsonl")
        safe_write(rec, RecordingEntry("p", "r"))
        assert blocker.read_text() == ""

    def test_empty_recording_drops(self):
        safe_write(EmptyRecording(), RecordingEntry("p", "r"))
