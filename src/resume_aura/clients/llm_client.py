"""Claude API wrapper used as the alternative text/vision backend."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import anthropic

from resume_aura.errors import DecodeError, ImageGenerationUnavailable
from resume_aura.utils.data_uri import InlinePayload
from resume_aura.utils.json_parser import extract_json

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


@dataclass
class GeneratedImage:
    """Raw image bytes returned by an image model."""

    data: bytes
    mime_type: str = "image/png"


class LLMClient:
    """Async Claude API client.

    Retries are applied by the caller through ``RetryPolicy`` so the
    throttling rules stay in one place.
    """

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    @staticmethod
    def _content(prompt: str, attachment: InlinePayload | None) -> str | list[dict]:
        if attachment is None:
            return prompt
        block_type = "document" if attachment.mime_type == "application/pdf" else "image"
        return [
            {
                "type": block_type,
                "source": {
                    "type": "base64",
                    "media_type": attachment.mime_type,
                    "data": attachment.data,
                },
            },
            {"type": "text", "text": prompt},
        ]

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str = "claude-haiku-4-5-20251001",
        temperature: float = 0.0,
        max_tokens: int = 8192,
        attachment: InlinePayload | None = None,
    ) -> LLMResponse:
        """Send a prompt (optionally with an inline image/PDF) and return the text."""
        logger.debug("LLM call: model=%s attachment=%s", model, attachment is not None)
        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": self._content(prompt, attachment)}],
        }
        if system:
            kwargs["system"] = system
        try:
            message = await self.client.messages.create(**kwargs)
        except Exception:
            logger.error("LLM call failed", exc_info=True)
            raise
        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log.append((model, input_tokens, output_tokens))
        return LLMResponse(
            text=message.content[0].text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def generate_json(
        self,
        prompt: str,
        system: str = "",
        model: str = "claude-haiku-4-5-20251001",
        temperature: float = 0.0,
        max_tokens: int = 8192,
        attachment: InlinePayload | None = None,
        schema: dict | None = None,
    ) -> dict | list:
        """Send a prompt and parse JSON from the response.

        Claude has no schema-constrained output mode here, so the schema is
        spelled out in the prompt. Raises DecodeError when no JSON comes back.
        """
        if schema is not None:
            prompt = (
                f"{prompt}\n\nRespond only with JSON matching this JSON schema:\n"
                f"{json.dumps(schema, ensure_ascii=False)}"
            )
        response = await self.generate(
            prompt=prompt,
            system=system,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            attachment=attachment,
        )
        try:
            return extract_json(response.text)
        except ValueError as exc:
            raise DecodeError(str(exc), raw=response.text) from exc

    async def generate_image(self, prompt: str, model: str, **kwargs) -> GeneratedImage | None:
        raise ImageGenerationUnavailable("Claude models do not generate images")

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary
