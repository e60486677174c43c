"""Conversational refinement: chat turns that may propose résumé patches."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Sequence

from resume_aura.errors import is_throttled
from resume_aura.models.chat import ChatTurn
from resume_aura.models.resume import ResumeRecord
from resume_aura.pipeline.gateway import ModelGateway
from resume_aura.pipeline.session import RATE_LIMIT_NOTICE, WorkflowSession
from resume_aura.utils.json_parser import find_fenced_block, strip_fenced_blocks

logger = logging.getLogger(__name__)

DIAGNOSTIC_PROMPT = (
    "Run a full diagnostic on my resume. Be critical. "
    "Highlight one specific weakness and propose a fix."
)
APPLIED_TEXT = "✓ **Change Applied.** I've updated your resume live. What's next?"
ERROR_TEXT = "**Error:** System timeout. Try again."


@dataclass
class ChatReply:
    """Display text plus an optional proposed patch (camelCase keys)."""

    text: str
    proposal: dict[str, Any] | None = None


def parse_reply(raw: str) -> ChatReply:
    """Split a model reply into display text and an embedded JSON patch.

    A fenced block that is not a JSON object yields no proposal; the fence is
    still removed from the display text.
    """
    block = find_fenced_block(raw)
    text = strip_fenced_blocks(raw)
    proposal = None
    if block is not None:
        try:
            decoded = json.loads(block)
        except json.JSONDecodeError:
            logger.warning("Failed to parse patch in chat reply")
        else:
            if isinstance(decoded, dict):
                proposal = decoded
            else:
                logger.warning("Ignoring non-object patch of type %s", type(decoded).__name__)
    return ChatReply(text=text, proposal=proposal)


async def request_reply(
    gateway: ModelGateway,
    record: ResumeRecord,
    message: str,
    history: Sequence[ChatTurn],
) -> ChatReply:
    """One round trip: send the record, history and message; parse the reply."""
    raw = await gateway.refine_with_chat(record, message, history)
    return parse_reply(raw)


class RefinementSession:
    """Chat history for one workflow session.

    Proposals are never applied automatically; ``apply_proposal`` is the
    explicit confirmation step.
    """

    def __init__(self, gateway: ModelGateway, session: WorkflowSession):
        self.gateway = gateway
        self.session = session
        self.turns: list[ChatTurn] = []
        self._diagnostic_started = False

    def _record(self) -> ResumeRecord:
        if self.session.resume is None:
            raise ValueError("No resume loaded")
        return self.session.resume

    async def send(self, message: str) -> ChatTurn | None:
        """Send a user message; returns the assistant turn (None for blank input)."""
        if not message.strip():
            return None
        record = self._record()
        history = list(self.turns)
        self.turns.append(ChatTurn(speaker="user", text=message))
        try:
            reply = await request_reply(self.gateway, record, message, history)
        except Exception as exc:
            logger.error("Chat turn failed: %s", exc, exc_info=True)
            if is_throttled(exc):
                self.session.require_configuration(RATE_LIMIT_NOTICE)
            turn = ChatTurn(speaker="assistant", text=ERROR_TEXT)
        else:
            turn = ChatTurn(speaker="assistant", text=reply.text, proposal=reply.proposal)
        self.turns.append(turn)
        return turn

    async def run_initial_diagnostic(self, session: WorkflowSession | None = None) -> ChatTurn | None:
        """Automatic first critique; runs at most once per session.

        Accepts the session argument so it can be used as the orchestrator's
        ``on_ready`` hook.
        """
        if self._diagnostic_started:
            return None
        self._diagnostic_started = True
        try:
            reply = await request_reply(self.gateway, self._record(), DIAGNOSTIC_PROMPT, [])
        except Exception:
            logger.exception("Initial diagnostic failed")
            return None
        turn = ChatTurn(speaker="assistant", text=reply.text, proposal=reply.proposal)
        self.turns.append(turn)
        return turn

    def apply_proposal(self, proposal: ChatTurn | dict[str, Any]) -> ResumeRecord:
        """Apply a confirmed patch to the session's record."""
        patch = proposal.proposal if isinstance(proposal, ChatTurn) else proposal
        if not patch:
            raise ValueError("Turn carries no proposal")
        record = self._record().with_patch(patch)
        self.session.replace_resume(record)
        self.turns.append(ChatTurn(speaker="assistant", text=APPLIED_TEXT))
        logger.info("Applied chat proposal touching %s", ", ".join(sorted(patch)))
        return record
