"""devti: stream IDE prompts and class context to chat-completion backends."""

__version__ = "0.1.0"
