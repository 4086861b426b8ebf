"""LLM client, transport and streaming for devti."""

from devti.llm.client import ChatClient
from devti.llm.provider import AzureOpenAIFormat, OpenAIFormat, ProviderFormat, get_format
from devti.llm.sse import SSEDecoder
from devti.llm.stream import StreamingPipeline
from devti.llm.transport import Transport

__all__ = [
    "AzureOpenAIFormat",
    "ChatClient",
    "OpenAIFormat",
    "ProviderFormat",
    "SSEDecoder",
    "StreamingPipeline",
    "Transport",
    "get_format",
]
