"""Pydantic models for visual themes ("auras")."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

ThemeVariant = Literal["safe", "bold", "creative", "custom", "static"]

CUSTOM_THEME_ID = "custom-aura"
BASELINE_THEME_ID = "aura-zero"


class ThemeDescriptor(BaseModel):
    id: str
    name: str
    description: str
    accent_color: str
    secondary_color: str
    font_family: str
    heading_font: str
    style: str
    variant: ThemeVariant = Field(alias="type")
    background_image: str | None = Field(default=None, alias="bgImage")  # data URI

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @property
    def is_static(self) -> bool:
        return self.variant == "static"


AURA_ZERO = ThemeDescriptor(
    id=BASELINE_THEME_ID,
    name="Aura Zero",
    description="The Baseline. Clean, minimal, utility-first.",
    accent_color="#10b981",
    secondary_color="#09090b",
    font_family="Inter",
    heading_font="Inter",
    style="Minimalist Utility",
    variant="static",
)
