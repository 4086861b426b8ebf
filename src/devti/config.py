"""Configuration management for devti."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    provider: str = "azure"  # request/response format: "azure" or "openai"
    base_url: str = "http://localhost:1234/v1/chat/completions"
    api_key: str = ""
    model: str = "gpt-3.5-turbo"  # display only, Azure puts the deployment in the URL
    timeout: float = Field(default=600, gt=0)  # seconds, bounds the whole call
    temperature: float = 0.0
    max_token_length: int = Field(default=8192, gt=0)  # history budget, in characters

    @property
    def url(self) -> str:
        """Endpoint URL with a trailing slash on its path (query left intact)."""
        path, sep, query = self.base_url.partition("?")
        if not path.endswith("/"):
            path = f"{path}/"
        return f"{path}{sep}{query}"


class CoderConfig(BaseModel):
    recording_in_local: bool = False
    recording_path: str = "~/.devti/recording.jsonl"
    no_chat_history: bool = False


class StreamConfig(BaseModel):
    queue_size: int = Field(default=16, ge=1)  # undelivered fragments before the reader blocks


class DevtiConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    coder: CoderConfig = Field(default_factory=CoderConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)


CONFIG_FILENAME = "devti.yaml"


def load_config(
    config_path: str | Path | None = None,
) -> tuple[DevtiConfig, Path | None]:
    """Load configuration from YAML file.

    Returns (config, resolved_path).  *resolved_path* is ``None`` when
    no file was found and built-in defaults are used.

    Search order (first match wins):
      1. Explicit ``--config`` path
      2. Current working directory: ``./devti.yaml``
      3. User config dir: ``~/.devti/devti.yaml``
    """
    if config_path is None:
        for d in (Path.cwd(), Path.home() / ".devti"):
            p = d / CONFIG_FILENAME
            if p.exists():
                config_path = p
                break

    resolved: Path | None = Path(config_path) if config_path else None
    if resolved and resolved.exists():
        with open(resolved) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        return DevtiConfig.model_validate(raw), resolved.resolve()

    if config_path is not None:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return DevtiConfig(), None
