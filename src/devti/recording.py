"""Recording sinks for completed prompt/response exchanges.

File: ~/.devti/recording.jsonl
Each line: {"instruction": "...", "output": "...", "_ts": "..."}
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from devti.types import RecordingEntry

if TYPE_CHECKING:
    from devti.config import DevtiConfig

_logger = logging.getLogger(__name__)


class Recording(Protocol):
    """Side channel that receives one entry per finished exchange."""

    def write(self, entry: RecordingEntry) -> None: ...


class EmptyRecording:
    """Drops every entry."""

    def write(self, entry: RecordingEntry) -> None:
        return None


class JsonlRecording:
    """Append entries as JSON lines to *path*."""

    def __init__(self, path: str | Path = "~/.devti/recording.jsonl") -> None:
        self.path = Path(path).expanduser()

    def write(self, entry: RecordingEntry) -> None:
        record = {
            "instruction": entry.prompt,
            "output": entry.full_response,
            "_ts": time.strftime("%Y-%m-%dT%H:%M:%S"),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        _logger.debug("Recorded exchange to %s", self.path)

    def read_all(self) -> list[RecordingEntry]:
        """Load every entry written so far (skipping unreadable lines)."""
        if not self.path.exists():
            return []
        entries: list[RecordingEntry] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                _logger.warning("Skipping malformed recording line in %s", self.path)
                continue
            entries.append(RecordingEntry(
                prompt=raw.get("instruction", ""),
                full_response=raw.get("output", ""),
            ))
        return entries


def recording_for(config: DevtiConfig) -> Recording:
    """Pick the sink for the current call from the live config."""
    if config.coder.recording_in_local:
        return JsonlRecording(config.coder.recording_path)
    return EmptyRecording()


def safe_write(recording: Recording, entry: RecordingEntry) -> None:
    """Write *entry*, logging instead of raising if the sink fails."""
    try:
        recording.write(entry)
    except Exception:
        _logger.exception("Recording sink %s failed", type(recording).__name__)
