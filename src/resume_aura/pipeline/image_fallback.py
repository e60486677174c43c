"""Primary/secondary model fallback for background image generation."""

from __future__ import annotations

import logging

from resume_aura.errors import is_quota_error
from resume_aura.models.theme import ThemeDescriptor
from resume_aura.pipeline.gateway import ModelGateway

logger = logging.getLogger(__name__)


class ImageFallback:
    """Try the high-quality image model, fall back to the cheaper one.

    The fallback only runs when the primary fails with a quota or not-found
    error. If the fallback fails too, the primary's error is raised so the
    caller sees the root cause. Both models get the same prompt.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        primary_model: str = "gemini-3-pro-image-preview",
        secondary_model: str = "gemini-2.5-flash-image",
        primary_size: str | None = "1K",
    ):
        self.gateway = gateway
        self.primary_model = primary_model
        self.secondary_model = secondary_model
        self.primary_size = primary_size

    async def generate(self, theme: ThemeDescriptor, persona: str) -> str | None:
        try:
            return await self.gateway.generate_background_image(
                theme, persona, model=self.primary_model, image_size=self.primary_size
            )
        except Exception as primary_error:
            if not is_quota_error(primary_error):
                raise
            logger.warning(
                "Image generation on %s failed (%s), falling back to %s",
                self.primary_model,
                primary_error,
                self.secondary_model,
            )
            try:
                return await self.gateway.generate_background_image(
                    theme, persona, model=self.secondary_model
                )
            except Exception:
                logger.error("Fallback image model %s failed", self.secondary_model, exc_info=True)
                raise primary_error
