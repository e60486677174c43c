"""Model gateway: one narrow, retried call per logical request type."""

from __future__ import annotations

import json
import logging
from typing import Protocol, Sequence

from pydantic import ValidationError

from resume_aura.clients.llm_client import GeneratedImage, LLMResponse
from resume_aura.clients.retry import RetryPolicy
from resume_aura.errors import DecodeError
from resume_aura.models.chat import ChatTurn, PersonaResult
from resume_aura.models.resume import ResumeRecord
from resume_aura.models.theme import CUSTOM_THEME_ID, ThemeDescriptor
from resume_aura.utils.data_uri import InlinePayload, split_data_uri, to_data_uri

logger = logging.getLogger(__name__)

THEME_COUNT = 3
HISTORY_WINDOW = 10
EMPTY_REPLY = "I'm having trouble analyzing that. Can you rephrase?"

PERSONA_PROMPT = (
    "Identify the candidate's career persona, professional title, and a witty "
    "1-sentence 'spicy roast' of their resume."
)
PARSE_PROMPT = "Extract resume data into the provided JSON schema. Preserve all details."

CHAT_SYSTEM = """\
You are AURA, an elite Career Strategist and Technical Recruiter.
Your Goal: Maximize hireability by forcing specificity and metrics.

CORE BEHAVIORS:
1. **Be High-Agency:** Audit the JSON. If dates are missing, bullet points are weak, or skills are generic, CALL IT OUT.
2. **The "XYZ" Formula:** "Accomplished [X] as measured by [Y], by doing [Z]."
   If they provide a weak answer, interrogate them for numbers.
3. **Live State Updates:** If proposing a content change, YOU MUST provide a JSON block inside triple backticks at the end of your response.
4. **Tone:** Professional, Direct, Slightly Critical. No "I hope this helps."

FORMATTING PROTOCOLS:
1. **No Walls of Text:** Use short paragraphs (max 2 sentences).
2. **Markdown:** Bold key metrics/skills. Use Bullet points.
3. **Action Cards:** Use dividers "---" if separating a critique from a proposal."""

CHAT_INSTRUCTION = (
    "You are an elite career concierge. Return JSON patches in backticks if data changes."
)

_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": _STRING}

PERSONA_SCHEMA = {
    "type": "object",
    "properties": {"persona": _STRING, "title": _STRING, "roast": _STRING},
    "required": ["persona", "title", "roast"],
}

RESUME_SCHEMA = {
    "type": "object",
    "properties": {
        "name": _STRING,
        "title": _STRING,
        "contact": {
            "type": "object",
            "properties": {
                "email": _STRING,
                "phone": _STRING,
                "location": _STRING,
                "linkedin": _STRING,
                "github": _STRING,
            },
            "required": ["email"],
        },
        "summary": _STRING,
        "experience": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": _STRING,
                    "company": _STRING,
                    "position": _STRING,
                    "period": _STRING,
                    "description": _STRING_LIST,
                },
            },
        },
        "education": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": _STRING,
                    "institution": _STRING,
                    "degree": _STRING,
                    "year": _STRING,
                },
            },
        },
        "skills": _STRING_LIST,
    },
    "required": ["name", "title", "contact", "summary"],
}

_THEME_FIELDS = ["name", "description", "accentColor", "secondaryColor", "fontFamily", "headingFont", "style"]

CUSTOM_THEME_SCHEMA = {
    "type": "object",
    "properties": {name: _STRING for name in _THEME_FIELDS},
    "required": _THEME_FIELDS,
}

THEME_LIST_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            **{name: _STRING for name in _THEME_FIELDS},
            "type": {"type": "string", "enum": ["safe", "bold", "creative"]},
        },
        "required": [*_THEME_FIELDS, "type"],
    },
}


class TextBackend(Protocol):
    async def generate(
        self, prompt: str, system: str = "", model: str = ..., **kwargs
    ) -> LLMResponse: ...

    async def generate_json(
        self, prompt: str, system: str = "", model: str = ..., **kwargs
    ) -> dict | list: ...


class ImageBackend(Protocol):
    async def generate_image(self, prompt: str, model: str, **kwargs) -> GeneratedImage | None: ...


def build_background_prompt(theme: ThemeDescriptor, persona: str) -> str:
    return (
        "Professional abstract texture for a portfolio background. "
        f"Style: {theme.style}. Vibe: {theme.variant}. Persona: {persona}. 4k resolution."
    )


def build_chat_prompt(
    record: ResumeRecord,
    message: str,
    history: Sequence[ChatTurn],
    window: int = HISTORY_WINDOW,
) -> str:
    """Concatenate instruction, record, the last ``window`` turns and the message."""
    history_context = "\n".join(turn.render() for turn in list(history)[-window:])
    return (
        f"System: {CHAT_SYSTEM}\n"
        f"Resume Data: {json.dumps(record.to_wire(), ensure_ascii=False)}\n"
        f"History:\n{history_context}\n"
        f"User Message: {message}"
    )


class ModelGateway:
    """Issues structured requests to the generative backends.

    Every backend call runs under ``retry``; decoding happens after the
    retried call, so a malformed payload is surfaced at once as DecodeError.
    """

    def __init__(
        self,
        llm: TextBackend,
        images: ImageBackend | None = None,
        *,
        text_model: str = "gemini-3-flash-preview",
        image_model: str = "gemini-3-pro-image-preview",
        aspect_ratio: str = "16:9",
        history_window: int = HISTORY_WINDOW,
        retry: RetryPolicy | None = None,
    ):
        self.llm = llm
        self.images = images if images is not None else llm
        self.text_model = text_model
        self.image_model = image_model
        self.aspect_ratio = aspect_ratio
        self.history_window = history_window
        self.retry = retry or RetryPolicy()

    async def _json(
        self,
        prompt: str,
        schema: dict,
        attachment: InlinePayload | None = None,
    ) -> dict | list:
        return await self.retry.run(
            lambda: self.llm.generate_json(
                prompt=prompt,
                model=self.text_model,
                attachment=attachment,
                schema=schema,
            )
        )

    async def classify_persona(self, image: str) -> PersonaResult:
        """Fast first pass over the upload: persona, title and roast."""
        data = await self._json(PERSONA_PROMPT, PERSONA_SCHEMA, split_data_uri(image))
        return _decode(PersonaResult, data)

    async def parse_resume(self, image: str) -> ResumeRecord:
        """Full structured extraction of the uploaded résumé."""
        data = await self._json(PARSE_PROMPT, RESUME_SCHEMA, split_data_uri(image))
        return _decode(ResumeRecord, data)

    async def suggest_themes(self, persona: str, title: str) -> list[ThemeDescriptor]:
        """Three themes for the persona; ids are assigned locally by position."""
        prompt = f'Persona: "{persona}", Title: "{title}". Generate {THEME_COUNT} distinct themes.'
        data = await self._json(prompt, THEME_LIST_SCHEMA)
        if not isinstance(data, list):
            raise DecodeError(f"Expected a list of themes, got {type(data).__name__}")
        return [
            _decode(ThemeDescriptor, {**item, "id": f"dynamic-theme-{i}"})
            for i, item in enumerate(data)
        ]

    async def generate_custom_theme(self, user_prompt: str, persona: str) -> ThemeDescriptor:
        prompt = f'Custom theme prompt: "{user_prompt}". Persona: "{persona}".'
        data = await self._json(prompt, CUSTOM_THEME_SCHEMA)
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a theme object, got {type(data).__name__}")
        return _decode(ThemeDescriptor, {**data, "id": CUSTOM_THEME_ID, "type": "custom"})

    async def generate_background_image(
        self,
        theme: ThemeDescriptor,
        persona: str,
        model: str | None = None,
        image_size: str | None = None,
    ) -> str | None:
        """Background texture for ``theme`` as a data URI, or None if no image came back."""
        model = model or self.image_model
        prompt = build_background_prompt(theme, persona)
        image = await self.retry.run(
            lambda: self.images.generate_image(
                prompt,
                model=model,
                aspect_ratio=self.aspect_ratio,
                image_size=image_size,
            )
        )
        if image is None:
            logger.info("No image part returned for theme %s (model=%s)", theme.id, model)
            return None
        return to_data_uri(image.data, image.mime_type)

    async def refine_with_chat(
        self,
        record: ResumeRecord,
        message: str,
        history: Sequence[ChatTurn],
    ) -> str:
        """Free-text assistant reply; may embed a fenced JSON patch."""
        prompt = build_chat_prompt(record, message, history, self.history_window)
        response = await self.retry.run(
            lambda: self.llm.generate(
                prompt=prompt,
                system=CHAT_INSTRUCTION,
                model=self.text_model,
            )
        )
        return response.text or EMPTY_REPLY


def _decode(model_cls, data):
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(
            f"{model_cls.__name__} payload did not match schema: {exc}",
            raw=json.dumps(data, ensure_ascii=False, default=str),
        ) from exc
