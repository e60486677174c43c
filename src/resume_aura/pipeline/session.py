"""Per-session workflow state shared by the orchestrator, chat and theme studio."""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from resume_aura.models.resume import Appearance, ResumeRecord
from resume_aura.models.theme import AURA_ZERO, CUSTOM_THEME_ID, ThemeDescriptor

logger = logging.getLogger(__name__)

QUOTA_NOTICE = "High-quality model access restricted. Project quota likely reached."
RATE_LIMIT_NOTICE = "API Rate Limit hit. Please try again in a few moments or select a paid key."


class AppStep(str, Enum):
    API_CONFIG = "api_config"
    LANDING = "landing"
    ANALYZING = "analyzing"
    EDITING = "editing"
    PUBLISHED = "published"


def default_appearance() -> Appearance:
    return Appearance(
        accent_color=AURA_ZERO.accent_color,
        font_family=AURA_ZERO.font_family,
        active_theme_id=AURA_ZERO.id,
        theme="glass",
    )


@dataclass
class WorkflowSession:
    """Mutable state of one user session.

    ``epoch`` increases with every workflow run; merges carry the epoch they
    were started under and are dropped once a newer run has begun.
    """

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    step: AppStep = AppStep.LANDING
    persona: str = ""
    title: str = ""
    roast: str = ""
    resume: ResumeRecord | None = None
    themes: list[ThemeDescriptor] = field(default_factory=lambda: [AURA_ZERO.model_copy()])
    custom_theme: ThemeDescriptor | None = None
    generating_themes: bool = False
    ready_for_diagnostic: bool = False
    error: str | None = None
    notices: list[str] = field(default_factory=list)
    last_processed_key: str | None = None
    epoch: int = 0

    # --- runs ---

    def begin_run(self) -> int:
        self.epoch += 1
        self.error = None
        self.step = AppStep.ANALYZING
        return self.epoch

    def resume_cached(self) -> int:
        """Re-enter the editor for an already processed upload.

        Starts a new epoch so runs still in flight can no longer merge.
        """
        self.epoch += 1
        self.error = None
        self.step = AppStep.EDITING
        return self.epoch

    def is_current(self, epoch: int | None) -> bool:
        return epoch is None or epoch == self.epoch

    def set_persona(self, persona: str, title: str, roast: str) -> None:
        self.persona, self.title, self.roast = persona, title, roast

    def enter_editing(self, record: ResumeRecord, cache_key: str) -> None:
        self.resume = record.model_copy(update={"appearance": default_appearance()})
        self.last_processed_key = cache_key
        self.step = AppStep.EDITING
        self.ready_for_diagnostic = True

    def fail(self, message: str) -> None:
        """Analysis failed: surface the message and return to the landing page."""
        self.persona = self.title = self.roast = ""
        self.error = message or "Analysis failed."
        self.step = AppStep.LANDING

    def require_configuration(self, message: str) -> None:
        """Quota exhausted: ask for another API key. Applied data is kept."""
        self.error = message
        if message not in self.notices:
            self.notices.append(message)
        self.step = AppStep.API_CONFIG

    # --- themes ---

    def find_theme(self, theme_id: str) -> ThemeDescriptor | None:
        if self.custom_theme is not None and self.custom_theme.id == theme_id:
            return self.custom_theme
        for theme in self.themes:
            if theme.id == theme_id:
                return theme
        return None

    def add_theme(self, theme: ThemeDescriptor, epoch: int | None = None) -> bool:
        if not self.is_current(epoch):
            return False
        if any(t.id == theme.id for t in self.themes):
            self.themes = [theme if t.id == theme.id else t for t in self.themes]
        else:
            self.themes = [*self.themes, theme]
        return True

    def set_custom_theme(self, theme: ThemeDescriptor) -> None:
        self.custom_theme = theme

    def merge_theme_image(self, theme_id: str, image: str, epoch: int | None = None) -> bool:
        """Attach a background image to a theme by id.

        Returns False (and changes nothing) for stale epochs, unknown ids and
        themes that already carry a background.
        """
        if not self.is_current(epoch):
            logger.debug("Dropping stale image merge for %s (epoch %s)", theme_id, epoch)
            return False
        if self.custom_theme is not None and self.custom_theme.id == theme_id:
            if self.custom_theme.background_image is not None:
                return False
            self.custom_theme = self.custom_theme.model_copy(update={"background_image": image})
            return True
        for i, theme in enumerate(self.themes):
            if theme.id != theme_id:
                continue
            if theme.background_image is not None:
                return False
            themes = list(self.themes)
            themes[i] = theme.model_copy(update={"background_image": image})
            self.themes = themes
            return True
        return False

    # --- record edits ---

    def replace_resume(self, record: ResumeRecord) -> None:
        self.resume = record

    def update_field(self, path: str, value: Any) -> ResumeRecord:
        """Set a dotted path on a copy of the record, e.g. ``contact.email``
        or ``experience.0.period``, and store the copy."""
        if self.resume is None:
            raise ValueError("No resume loaded")
        data = copy.deepcopy(self.resume.to_wire())
        keys = path.split(".")
        current: Any = data
        for key in keys[:-1]:
            current = current[int(key)] if isinstance(current, list) else current[key]
        last = keys[-1]
        if isinstance(current, list):
            current[int(last)] = value
        else:
            current[last] = value
        self.resume = ResumeRecord.model_validate(data)
        return self.resume

    # --- navigation ---

    def publish(self) -> None:
        if self.step is not AppStep.EDITING:
            raise ValueError(f"Cannot publish from step {self.step.value}")
        self.step = AppStep.PUBLISHED

    def back_to_editing(self) -> None:
        if self.resume is None:
            raise ValueError("No resume loaded")
        self.step = AppStep.EDITING

    def return_to_landing(self) -> None:
        self.step = AppStep.LANDING

    def key_selected(self) -> None:
        """A new API key was chosen on the configuration screen."""
        self.step = AppStep.LANDING

    def dismiss_error(self) -> None:
        self.error = None

    def to_dict(self) -> dict[str, Any]:
        themes = list(self.themes)
        if self.custom_theme is not None:
            themes.append(self.custom_theme)
        return {
            "sessionId": self.session_id,
            "step": self.step.value,
            "persona": self.persona,
            "title": self.title,
            "roast": self.roast,
            "resume": self.resume.to_wire() if self.resume else None,
            "themes": [t.model_dump(by_alias=True, exclude_none=True) for t in themes],
            "error": self.error,
            "notices": list(self.notices),
        }
