"""Google GenAI (Gemini) wrapper: text, schema-constrained JSON and images."""

from __future__ import annotations

import json
import logging

from google import genai
from google.genai import types

from resume_aura.clients.llm_client import GeneratedImage, LLMResponse
from resume_aura.errors import DecodeError
from resume_aura.utils.data_uri import InlinePayload

logger = logging.getLogger(__name__)


class GenAIClient:
    """Async Gemini client with the same surface as ``LLMClient``.

    Images come back as inline parts; text and JSON calls record token usage
    in ``_token_log`` and image calls are counted in ``_image_log``.
    """

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            # HttpOptions.timeout is in milliseconds
            kwargs["http_options"] = types.HttpOptions(timeout=int(timeout * 1000))
        self.client = genai.Client(**kwargs)
        self._token_log: list[tuple[str, int, int]] = []
        self._image_log: list[str] = []

    @staticmethod
    def _contents(prompt: str, attachment: InlinePayload | None) -> list:
        if attachment is None:
            return [prompt]
        return [
            types.Part.from_bytes(data=attachment.raw_bytes, mime_type=attachment.mime_type),
            prompt,
        ]

    def _record_usage(self, model: str, response) -> tuple[int, int]:
        usage = getattr(response, "usage_metadata", None)
        input_tokens = (getattr(usage, "prompt_token_count", None) or 0) if usage else 0
        output_tokens = (getattr(usage, "candidates_token_count", None) or 0) if usage else 0
        self._token_log.append((model, input_tokens, output_tokens))
        return input_tokens, output_tokens

    async def _generate_content(self, model: str, contents: list, config: types.GenerateContentConfig):
        logger.debug("GenAI call: model=%s", model)
        try:
            return await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except Exception:
            logger.error("GenAI call failed: model=%s", model, exc_info=True)
            raise

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str = "gemini-3-flash-preview",
        temperature: float | None = None,
        max_tokens: int | None = None,
        attachment: InlinePayload | None = None,
    ) -> LLMResponse:
        """Send a prompt and return the text response with usage."""
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        response = await self._generate_content(model, self._contents(prompt, attachment), config)
        input_tokens, output_tokens = self._record_usage(model, response)
        return LLMResponse(
            text=response.text or "",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def generate_json(
        self,
        prompt: str,
        system: str = "",
        model: str = "gemini-3-flash-preview",
        temperature: float | None = None,
        max_tokens: int | None = None,
        attachment: InlinePayload | None = None,
        schema: dict | None = None,
    ) -> dict | list:
        """Request JSON output constrained by ``schema`` and decode it.

        Raises DecodeError when the payload is not valid JSON.
        """
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json",
            response_json_schema=schema,
        )
        response = await self._generate_content(model, self._contents(prompt, attachment), config)
        self._record_usage(model, response)
        text = response.text or ""
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"Model returned malformed JSON: {exc}", raw=text) from exc

    async def generate_image(
        self,
        prompt: str,
        model: str,
        aspect_ratio: str = "16:9",
        image_size: str | None = None,
    ) -> GeneratedImage | None:
        """Generate one image; None when the response carries no image part."""
        image_kwargs: dict = {"aspect_ratio": aspect_ratio}
        if image_size:
            image_kwargs["image_size"] = image_size
        config = types.GenerateContentConfig(image_config=types.ImageConfig(**image_kwargs))
        response = await self._generate_content(model, [prompt], config)
        self._image_log.append(model)

        candidates = response.candidates or []
        if not candidates or candidates[0].content is None:
            logger.warning("GenAI image call returned no candidates: model=%s", model)
            return None
        for part in candidates[0].content.parts or []:
            if part.inline_data is not None and part.inline_data.data:
                return GeneratedImage(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "image/png",
                )
        return None

    def get_token_summary(self) -> dict:
        """Return accumulated token and image usage and reset the logs."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
            "images": list(self._image_log),
        }
        self._token_log.clear()
        self._image_log.clear()
        return summary
