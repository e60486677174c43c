"""Analysis orchestrator - drives the upload → persona → résumé/themes workflow."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from resume_aura.errors import is_quota_error, is_throttled
from resume_aura.models.theme import ThemeDescriptor
from resume_aura.parsers.upload import Upload
from resume_aura.pipeline.gateway import ModelGateway
from resume_aura.pipeline.image_fallback import ImageFallback
from resume_aura.pipeline.session import (
    QUOTA_NOTICE,
    RATE_LIMIT_NOTICE,
    AppStep,
    WorkflowSession,
)

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Sequences the analysis of an uploaded résumé.

    Classification gates everything. Theme suggestion and résumé parsing then
    run concurrently; parsing gates entry into the editor. Background images
    are fetched per theme in tasks that nothing waits on, except ``drain()``.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        images: ImageFallback,
        *,
        on_phase: Callable[[str, str], None] | None = None,
        on_ready: Callable[[WorkflowSession], Awaitable[object]] | None = None,
        fetch_images: bool = True,
    ):
        self.gateway = gateway
        self.images = images
        self.on_phase = on_phase
        self.on_ready = on_ready
        self.fetch_images = fetch_images
        self._background: set[asyncio.Task] = set()

    def _notify(self, phase: str, detail: str = "") -> None:
        logger.debug("phase=%s %s", phase, detail)
        if self.on_phase:
            self.on_phase(phase, detail)

    def _spawn(self, coro: Awaitable[object]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait until every background task (images, diagnostic) has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def process_upload(self, session: WorkflowSession, upload: Upload) -> AppStep:
        """Run the analysis workflow for ``upload`` and return the resulting step."""
        if upload.cache_key == session.last_processed_key and session.resume is not None:
            self._notify("cached", upload.name)
            session.resume_cached()
            return session.step

        epoch = session.begin_run()
        self._notify("analyzing", upload.name)

        # --- Phase 1: classification gates everything ---
        try:
            persona = await self.gateway.classify_persona(upload.data_uri)
        except Exception as exc:
            self._analysis_failed(session, exc, epoch)
            return session.step
        if not session.is_current(epoch):
            return session.step
        session.set_persona(persona.persona, persona.title, persona.roast)
        self._notify("persona", persona.persona)

        # --- Phase 2: themes and parse in parallel ---
        session.generating_themes = True
        themes_task = asyncio.ensure_future(
            self.gateway.suggest_themes(persona.persona, persona.title)
        )
        parse_task = asyncio.ensure_future(self.gateway.parse_resume(upload.data_uri))

        try:
            record = await parse_task
        except Exception as exc:
            _discard(themes_task)
            session.generating_themes = False
            self._analysis_failed(session, exc, epoch)
            return session.step
        if not session.is_current(epoch):
            _discard(themes_task)
            return session.step

        session.enter_editing(record, upload.cache_key)
        self._notify("ready", record.name)
        if self.on_ready is not None:
            self._spawn(self._run_ready_hook(session))

        # --- Phase 3: progressive theme reveal, images in the background ---
        try:
            themes = await themes_task
        except Exception as exc:
            self._themes_failed(session, exc, epoch)
            return session.step
        finally:
            if session.is_current(epoch):
                session.generating_themes = False

        for theme in themes:
            if not session.add_theme(theme, epoch):
                break
            self._notify("theme", theme.name)
            if self.fetch_images:
                self._spawn(self._fetch_background(session, theme, persona.persona, epoch))

        return session.step

    def _analysis_failed(self, session: WorkflowSession, exc: Exception, epoch: int) -> None:
        logger.error("Analysis error: %s", exc, exc_info=True)
        if not session.is_current(epoch):
            return
        if is_throttled(exc):
            session.require_configuration(RATE_LIMIT_NOTICE)
        else:
            session.fail(str(exc))
        self._notify("failed", session.error or "")

    def _themes_failed(self, session: WorkflowSession, exc: Exception, epoch: int) -> None:
        if not session.is_current(epoch):
            return
        if is_throttled(exc):
            logger.warning("Theme suggestion throttled: %s", exc)
            session.require_configuration(RATE_LIMIT_NOTICE)
        else:
            logger.warning("Theme suggestion failed: %s", exc, exc_info=True)

    async def _fetch_background(
        self,
        session: WorkflowSession,
        theme: ThemeDescriptor,
        persona: str,
        epoch: int,
    ) -> None:
        try:
            image = await self.images.generate(theme, persona)
        except Exception as exc:
            if not session.is_current(epoch):
                return
            if is_quota_error(exc):
                logger.warning("Background for %s hit quota: %s", theme.id, exc)
                session.require_configuration(QUOTA_NOTICE)
                self._notify("quota", theme.id)
            else:
                logger.warning("Background for %s failed", theme.id, exc_info=True)
            return
        if image and session.merge_theme_image(theme.id, image, epoch):
            self._notify("background", theme.id)

    async def _run_ready_hook(self, session: WorkflowSession) -> None:
        try:
            await self.on_ready(session)
        except Exception:
            logger.exception("Post-load hook failed")


def _discard(task: asyncio.Future) -> None:
    """Cancel a sibling branch whose result is no longer wanted."""
    task.cancel()
    # retrieve the outcome so a branch that already failed is not reported as unhandled
    task.add_done_callback(lambda t: t.cancelled() or t.exception())
