"""Tests for request encoding and response decoding."""

import json

import pytest

from devti.errors import DecodeError
from devti.llm.provider import AzureOpenAIFormat, OpenAIFormat, ProviderFormat, get_format
from devti.types import ChatRole, ChatTurn, CompletionDelta

TURNS = (
    ChatTurn(ChatRole.SYSTEM, "You are a code assistant."),
    ChatTurn(ChatRole.USER, "Explain `val x = 1`, über kurz"),
)


class TestBuildRequest:
    def test_schema(self):
        body = json.loads(AzureOpenAIFormat().build_request(TURNS, 0.0, stream=True))
        assert list(body) == ["messages", "temperature", "stream"]
        assert body["messages"][1] == {"role": "user", "content": TURNS[1].content}
        assert body["temperature"] == 0.0
        assert body["stream"] is True

    def test_deterministic(self):
        fmt = AzureOpenAIFormat()
        assert fmt.build_request(TURNS, 0.7, False) == fmt.build_request(TURNS, 0.7, False)

    def test_utf8_not_escaped(self):
        raw = AzureOpenAIFormat().build_request(TURNS, 0.0, False)
        assert "über".encode("utf-8") in raw


class TestParseResponse:
    def test_first_choice_only(self):
        body = json.dumps({"choices": [
            {"message": {"role": "assistant", "content": "first"}},
            {"message": {"role": "assistant", "content": "second"}},
        ]}).encode()
        assert AzureOpenAIFormat().parse_response(body) == CompletionDelta("first")

    def test_missing_choices_is_empty(self):
        assert AzureOpenAIFormat().parse_response(b"{}").content == ""

    def test_null_content_is_empty(self):
        body = b'{"choices": [{"message": {"content": null}}]}'
        assert AzureOpenAIFormat().parse_response(body).content == ""

    def test_invalid_json(self):
        with pytest.raises(DecodeError):
            AzureOpenAIFormat().parse_response(b"<html>oops</html>")

    def test_wrong_shape_is_decode_error(self):
        bodies = [
            b'{"choices": [{"message": "oops"}]}',
            b'{"choices": {"0": {"message": {"content": "x"}}}}',
            b'{"choices": 5}',
            b'{"choices": ["text"]}',
            b'{"choices": [{"message": {"content": 5}}]}',
            b'{"choices": [{"message": {"content": ["a"]}}]}',
        ]
        for body in bodies:
            with pytest.raises(DecodeError):
                AzureOpenAIFormat().parse_response(body)

    def test_empty_choices_is_empty(self):
        assert AzureOpenAIFormat().parse_response(b'{"choices": []}').content == ""


class TestParseStreamEvent:
    def test_azure_message_shape(self):
        delta = AzureOpenAIFormat().parse_stream_event(
            '{"choices":[{"message":{"content":"Hel"}}]}')
        assert delta == CompletionDelta("Hel")

    def test_azure_accepts_delta_shape(self):
        delta = AzureOpenAIFormat().parse_stream_event(
            '{"choices":[{"delta":{"content":"lo"}}]}')
        assert delta.content == "lo"

    def test_openai_delta_shape(self):
        delta = OpenAIFormat().parse_stream_event(
            '{"choices":[{"index":0,"delta":{"role":"assistant"}}]}')
        assert delta == CompletionDelta("")
        assert not delta

    def test_done_sentinel(self):
        assert AzureOpenAIFormat().parse_stream_event("[DONE]") is None
        assert OpenAIFormat().parse_stream_event(" [DONE] ") is None

    def test_malformed_event(self):
        with pytest.raises(DecodeError) as exc_info:
            AzureOpenAIFormat().parse_stream_event('{"choices": [')
        assert exc_info.value.payload == '{"choices": ['

    def test_wrong_shape_event(self):
        with pytest.raises(DecodeError):
            AzureOpenAIFormat().parse_stream_event('{"choices":[{"message":"oops"}]}')
        with pytest.raises(DecodeError):
            AzureOpenAIFormat().parse_stream_event('{"choices":[{"delta":{"content":5}}]}')
        with pytest.raises(DecodeError):
            OpenAIFormat().parse_stream_event('{"choices":[{"delta":"lo"}]}')
        with pytest.raises(DecodeError):
            OpenAIFormat().parse_stream_event('{"choices":{"delta":{}}}')


class TestRegistry:
    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_format("Azure"), AzureOpenAIFormat)
        assert isinstance(get_format("openai"), OpenAIFormat)

    def test_unknown(self):
        with pytest.raises(KeyError):
            get_format("bard")

    def test_base_format_is_abstract(self):
        with pytest.raises(TypeError):
            ProviderFormat()
