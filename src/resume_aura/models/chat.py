"""Pydantic models for persona analysis and chat turns."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

Speaker = Literal["user", "assistant"]


class PersonaResult(BaseModel):
    persona: str
    title: str
    roast: str


class ChatTurn(BaseModel):
    speaker: Speaker
    text: str
    proposal: dict[str, Any] | None = None  # camelCase record patch

    def render(self) -> str:
        label = "User" if self.speaker == "user" else "Assistant"
        return f"{label}: {self.text}"
