"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

PROVIDERS = ("gemini", "anthropic")


@dataclass(frozen=True)
class LLMConfig:
    provider: str = "gemini"  # text/vision backend; images always use Gemini
    text_model: str = "gemini-3-flash-preview"
    claude_model: str = "claude-haiku-4-5-20251001"
    image_model: str = "gemini-3-pro-image-preview"
    fallback_image_model: str = "gemini-2.5-flash-image"
    image_size: str = "1K"
    aspect_ratio: str = "16:9"
    timeout: int = 60

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(
                f"provider must be one of {', '.join(PROVIDERS)}, got {self.provider!r}"
            )
        if self.timeout < 1:
            raise ValueError(f"timeout must be >= 1, got {self.timeout}")
        if self.image_model == self.fallback_image_model:
            raise ValueError("fallback_image_model must differ from image_model")


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3
    initial_delay: float = 1.0

    def __post_init__(self) -> None:
        if not 0 <= self.max_retries <= 10:
            raise ValueError(f"max_retries must be between 0 and 10, got {self.max_retries}")
        if self.initial_delay <= 0:
            raise ValueError(f"initial_delay must be positive, got {self.initial_delay}")


@dataclass(frozen=True)
class ChatConfig:
    history_window: int = 10

    def __post_init__(self) -> None:
        if self.history_window < 1:
            raise ValueError(f"history_window must be >= 1, got {self.history_window}")


@dataclass(frozen=True)
class UsageConfig:
    db_path: str = "~/.resume-aura/usage.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults.

    Raises ValueError when a value is out of range.
    """
    if path is None:
        # Look for config.yaml relative to the project root
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        retry=RetryConfig(**raw.get("retry", {})),
        chat=ChatConfig(**raw.get("chat", {})),
        usage=UsageConfig(**raw.get("usage", {})),
    )
