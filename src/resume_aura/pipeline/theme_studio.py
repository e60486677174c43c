"""Theme application and custom aura generation."""

from __future__ import annotations

import logging

from resume_aura.errors import is_quota_error
from resume_aura.models.resume import ResumeRecord
from resume_aura.models.theme import ThemeDescriptor
from resume_aura.pipeline.gateway import ModelGateway
from resume_aura.pipeline.image_fallback import ImageFallback
from resume_aura.pipeline.session import QUOTA_NOTICE, WorkflowSession, default_appearance

logger = logging.getLogger(__name__)


class ThemeStudio:
    def __init__(self, gateway: ModelGateway, images: ImageFallback):
        self.gateway = gateway
        self.images = images

    async def apply_theme(self, session: WorkflowSession, theme_id: str) -> ResumeRecord:
        """Make ``theme_id`` the active theme of the session's record.

        Non-static themes without a background get one generated first;
        static themes clear the background.
        """
        if session.resume is None:
            raise ValueError("No resume loaded")
        theme = session.find_theme(theme_id)
        if theme is None:
            raise KeyError(theme_id)

        background = theme.background_image
        if background is None and not theme.is_static:
            background = await self.images.generate(theme, session.persona)
            if background:
                session.merge_theme_image(theme.id, background)

        appearance = session.resume.appearance or default_appearance()
        appearance = appearance.model_copy(
            update={
                "accent_color": theme.accent_color,
                "font_family": theme.font_family,
                "active_theme_id": theme.id,
                "background_image": None if theme.is_static else background,
            }
        )
        # the session may have been edited while the image was generating
        record = session.resume.model_copy(update={"appearance": appearance})
        session.replace_resume(record)
        return record

    async def create_custom_theme(
        self, session: WorkflowSession, prompt: str
    ) -> ThemeDescriptor | None:
        """Generate a theme from a free-text prompt, give it a background and apply it.

        Returns None for a blank prompt or when generation fails; failures
        are reported on the session.
        """
        if not prompt.strip():
            return None
        try:
            theme = await self.gateway.generate_custom_theme(prompt, session.persona)
            background = await self.images.generate(theme, session.persona)
            theme = theme.model_copy(update={"background_image": background})
            session.set_custom_theme(theme)
            await self.apply_theme(session, theme.id)
        except Exception as exc:
            logger.error("Custom aura failed: %s", exc, exc_info=True)
            if is_quota_error(exc):
                session.require_configuration(QUOTA_NOTICE)
            else:
                session.error = str(exc) or "Custom aura failed."
            return None
        return session.custom_theme
