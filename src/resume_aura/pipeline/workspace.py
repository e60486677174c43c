"""Wires clients, gateway and workflow components for one session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from resume_aura.clients.genai_client import GenAIClient
from resume_aura.clients.llm_client import LLMClient
from resume_aura.clients.retry import RetryPolicy
from resume_aura.config import AppConfig
from resume_aura.logging.cost_calculator import calculate_cost
from resume_aura.logging.models import UsageLog
from resume_aura.pipeline.gateway import ModelGateway
from resume_aura.pipeline.image_fallback import ImageFallback
from resume_aura.pipeline.orchestrator import AnalysisOrchestrator
from resume_aura.pipeline.refinement import RefinementSession
from resume_aura.pipeline.session import WorkflowSession
from resume_aura.pipeline.theme_studio import ThemeStudio

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    config: AppConfig
    session: WorkflowSession
    gateway: ModelGateway
    images: ImageFallback
    orchestrator: AnalysisOrchestrator
    refinement: RefinementSession
    studio: ThemeStudio
    clients: list = field(default_factory=list)

    def usage_log(
        self,
        mode: str,
        elapsed_seconds: float = 0.0,
        error: str | None = None,
    ) -> UsageLog:
        """Collect (and reset) token usage from every client into a UsageLog."""
        calls: list[tuple[str, int, int]] = []
        images: list[str] = []
        for client in self.clients:
            summary = client.get_token_summary()
            calls.extend(summary["calls"])
            images.extend(summary.get("images", []))
        session = self.session
        return UsageLog(
            session_id=session.session_id,
            mode=mode,
            provider=self.config.llm.provider,
            persona=session.persona or None,
            title=session.title or None,
            final_step=session.step.value,
            theme_count=len(session.themes),
            image_count=len(images),
            chat_turns=len(self.refinement.turns),
            elapsed_seconds=elapsed_seconds,
            total_input_tokens=sum(c[1] for c in calls),
            total_output_tokens=sum(c[2] for c in calls),
            estimated_cost_usd=calculate_cost(calls, images),
            success=error is None,
            error_message=error,
        )


def build_workspace(
    config: AppConfig,
    session: WorkflowSession | None = None,
    *,
    llm: LLMClient | GenAIClient | None = None,
    image_client: GenAIClient | None = None,
    on_phase: Callable[[str, str], None] | None = None,
    fetch_images: bool = True,
    run_diagnostic: bool = True,
) -> Workspace:
    """Build the clients and workflow components described by ``config``."""
    session = session or WorkflowSession()
    timeout = config.llm.timeout

    if image_client is None:
        image_client = GenAIClient(timeout=timeout)
    if llm is None:
        llm = LLMClient(timeout=timeout) if config.llm.provider == "anthropic" else image_client
    text_model = config.llm.claude_model if config.llm.provider == "anthropic" else config.llm.text_model
    logger.debug("Workspace: provider=%s text_model=%s", config.llm.provider, text_model)

    gateway = ModelGateway(
        llm,
        image_client,
        text_model=text_model,
        image_model=config.llm.image_model,
        aspect_ratio=config.llm.aspect_ratio,
        history_window=config.chat.history_window,
        retry=RetryPolicy(
            max_retries=config.retry.max_retries,
            initial_delay=config.retry.initial_delay,
        ),
    )
    images = ImageFallback(
        gateway,
        primary_model=config.llm.image_model,
        secondary_model=config.llm.fallback_image_model,
        primary_size=config.llm.image_size,
    )
    refinement = RefinementSession(gateway, session)
    orchestrator = AnalysisOrchestrator(
        gateway,
        images,
        on_phase=on_phase,
        on_ready=refinement.run_initial_diagnostic if run_diagnostic else None,
        fetch_images=fetch_images,
    )
    clients = [image_client] if llm is image_client else [llm, image_client]
    return Workspace(
        config=config,
        session=session,
        gateway=gateway,
        images=images,
        orchestrator=orchestrator,
        refinement=refinement,
        studio=ThemeStudio(gateway, images),
        clients=clients,
    )
