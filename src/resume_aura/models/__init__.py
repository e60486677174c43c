"""Data models for the résumé aura workflow."""

from resume_aura.models.chat import ChatTurn, PersonaResult, Speaker
from resume_aura.models.resume import (
    Appearance,
    Contact,
    EducationEntry,
    ExperienceEntry,
    ProjectEntry,
    ResumeRecord,
)
from resume_aura.models.theme import (
    AURA_ZERO,
    BASELINE_THEME_ID,
    CUSTOM_THEME_ID,
    ThemeDescriptor,
    ThemeVariant,
)

__all__ = [
    "AURA_ZERO",
    "Appearance",
    "BASELINE_THEME_ID",
    "CUSTOM_THEME_ID",
    "ChatTurn",
    "Contact",
    "EducationEntry",
    "ExperienceEntry",
    "PersonaResult",
    "ProjectEntry",
    "ResumeRecord",
    "Speaker",
    "ThemeDescriptor",
    "ThemeVariant",
]
