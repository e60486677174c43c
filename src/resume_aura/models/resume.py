"""Pydantic models for the structured résumé record.

Field names are snake_case in Python and camelCase on the wire (model
prompts, JSON output), via ``to_camel`` aliases.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class Contact(BaseModel):
    email: str
    phone: str = ""
    location: str = ""
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None

    model_config = CAMEL


class ExperienceEntry(BaseModel):
    id: str = ""
    company: str = ""
    position: str = ""
    period: str = ""
    description: list[str] = []

    model_config = CAMEL


class EducationEntry(BaseModel):
    id: str = ""
    institution: str = ""
    degree: str = ""
    year: str = ""

    model_config = CAMEL


class ProjectEntry(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    link: str | None = None

    model_config = CAMEL


class Appearance(BaseModel):
    accent_color: str
    theme: Literal["light", "dark", "glass", "ai"] = "glass"
    font_family: str
    active_theme_id: str | None = None
    background_image: str | None = Field(default=None, alias="bgImage")  # data URI

    model_config = CAMEL


class ResumeRecord(BaseModel):
    name: str
    title: str
    contact: Contact
    summary: str
    experience: list[ExperienceEntry] = []
    education: list[EducationEntry] = []
    skills: list[str] = []
    projects: list[ProjectEntry] | None = None
    appearance: Appearance | None = None

    model_config = CAMEL

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict in the shape the model and the site expect."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def with_patch(self, patch: dict[str, Any]) -> ResumeRecord:
        """Return a new record with the patch's top-level fields replaced.

        A full record as patch replaces everything; a partial one only the
        fields it names.
        """
        merged = self.to_wire()
        merged.update(patch)
        return ResumeRecord.model_validate(merged)
