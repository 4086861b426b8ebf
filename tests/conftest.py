"""Shared fixtures: an httpx mock backend that speaks SSE."""

from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest

from devti.config import DevtiConfig
from devti.llm.sse import encode_event
from devti.llm.transport import Transport
from devti.types import RecordingEntry

URL = "http://llm.test/openai/deployments/gpt/chat/completions"


def completion_event(content: str) -> str:
    """Azure-style stream payload carrying *content*."""
    return json.dumps({"choices": [{"message": {"content": content}}]})


def sse_body(*payloads: str) -> list[bytes]:
    return [encode_event(p) for p in payloads]


class FakeStream(httpx.AsyncByteStream):
    """Response body that yields *chunks*, then optionally fails or hangs."""

    def __init__(
        self,
        chunks: list[bytes],
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self.chunks = chunks
        self.error = error
        self.hang = hang
        self.closed = False
        self.sent = 0

    async def __aiter__(self):
        for chunk in self.chunks:
            self.sent += 1
            yield chunk
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class MemoryRecording:
    def __init__(self) -> None:
        self.entries: list[RecordingEntry] = []

    def write(self, entry: RecordingEntry) -> None:
        self.entries.append(entry)


def mock_transport(handler: Callable[[httpx.Request], httpx.Response]) -> Transport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Transport(client=client)


@pytest.fixture
def config() -> DevtiConfig:
    return DevtiConfig.model_validate({"llm": {"base_url": URL, "api_key": "test-key"}})


@pytest.fixture
def recording() -> MemoryRecording:
    return MemoryRecording()
