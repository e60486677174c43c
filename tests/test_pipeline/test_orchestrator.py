"""Tests for the analysis orchestrator."""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

from conftest import ThrottledError
from resume_aura.models.theme import BASELINE_THEME_ID
from resume_aura.pipeline.gateway import PARSE_PROMPT, PERSONA_PROMPT
from resume_aura.pipeline.orchestrator import AnalysisOrchestrator
from resume_aura.pipeline.session import QUOTA_NOTICE, RATE_LIMIT_NOTICE, AppStep


def _make_dispatch(persona=None, resume=None, themes=None):
    """generate_json side_effect that answers by prompt type.

    Values that are exceptions are raised instead of returned.
    """

    async def dispatch(prompt, **kwargs):
        if prompt == PERSONA_PROMPT:
            result = persona
        elif prompt == PARSE_PROMPT:
            result = resume
        elif "distinct themes" in prompt:
            result = themes
        else:
            raise AssertionError(f"unexpected prompt: {prompt}")
        if isinstance(result, Exception):
            raise result
        return result

    return dispatch


def _prompts(mock_llm) -> list[str]:
    return [c.kwargs["prompt"] for c in mock_llm.generate_json.await_args_list]


@pytest.fixture
def llm_ok(mock_llm, persona_json, resume_json, themes_json):
    mock_llm.generate_json.side_effect = _make_dispatch(persona_json, resume_json, themes_json)
    return mock_llm


@pytest.fixture
def orchestrator(gateway, image_fallback):
    return AnalysisOrchestrator(gateway, image_fallback)


class TestProcessUpload:
    async def test_happy_path_enters_editing(self, orchestrator, llm_ok, session, upload):
        step = await orchestrator.process_upload(session, upload)

        assert step is AppStep.EDITING
        assert session.persona == "Builder"
        assert session.title == "Engineer"
        assert session.resume.name == "Ada"
        appearance = session.resume.appearance
        assert appearance.accent_color == "#10b981"
        assert appearance.theme == "glass"
        assert appearance.active_theme_id == BASELINE_THEME_ID
        assert session.last_processed_key == upload.cache_key
        assert session.ready_for_diagnostic is True
        assert session.error is None

    async def test_themes_are_appended_after_baseline(self, orchestrator, llm_ok, session, upload):
        await orchestrator.process_upload(session, upload)

        assert [t.id for t in session.themes] == [
            BASELINE_THEME_ID,
            "dynamic-theme-0",
            "dynamic-theme-1",
            "dynamic-theme-2",
        ]
        assert session.generating_themes is False

    async def test_backgrounds_merge_in_background(self, orchestrator, llm_ok, session, upload):
        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        dynamic = [t for t in session.themes if t.id != BASELINE_THEME_ID]
        assert all(t.background_image.startswith("data:image/png;base64,") for t in dynamic)
        assert session.themes[0].background_image is None
        assert llm_ok.generate_image.await_count == 3

    async def test_fetch_images_disabled(self, gateway, image_fallback, llm_ok, session, upload):
        orchestrator = AnalysisOrchestrator(gateway, image_fallback, fetch_images=False)
        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        llm_ok.generate_image.assert_not_awaited()
        assert all(t.background_image is None for t in session.themes)

    async def test_phases_are_reported(self, gateway, image_fallback, llm_ok, session, upload):
        phases = []
        orchestrator = AnalysisOrchestrator(
            gateway, image_fallback, on_phase=lambda phase, detail: phases.append(phase)
        )

        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        assert phases[:3] == ["analyzing", "persona", "ready"]
        assert phases.count("theme") == 3
        assert phases.count("background") == 3


class TestCache:
    async def test_same_upload_short_circuits(self, orchestrator, llm_ok, session, upload):
        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()
        session.return_to_landing()
        llm_ok.generate_json.reset_mock()
        llm_ok.generate_image.reset_mock()

        step = await orchestrator.process_upload(session, upload)

        assert step is AppStep.EDITING
        llm_ok.generate_json.assert_not_awaited()
        llm_ok.generate_image.assert_not_awaited()

    async def test_different_upload_runs_again(self, orchestrator, llm_ok, session, upload):
        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()
        llm_ok.generate_json.reset_mock()

        changed = dataclasses.replace(upload, modified=upload.modified + 1)
        await orchestrator.process_upload(session, changed)

        assert PERSONA_PROMPT in _prompts(llm_ok)


class TestFailures:
    async def test_throttled_classification_needs_configuration(
        self, orchestrator, mock_llm, session, upload, resume_json, themes_json
    ):
        mock_llm.generate_json.side_effect = _make_dispatch(ThrottledError(), resume_json, themes_json)

        step = await orchestrator.process_upload(session, upload)

        assert step is AppStep.API_CONFIG
        assert session.error == RATE_LIMIT_NOTICE
        assert set(_prompts(mock_llm)) == {PERSONA_PROMPT}
        # initial attempt plus three retries
        assert mock_llm.generate_json.await_count == 4

    async def test_classification_error_returns_to_landing(
        self, orchestrator, mock_llm, session, upload
    ):
        mock_llm.generate_json.side_effect = _make_dispatch(RuntimeError("bad image"))

        step = await orchestrator.process_upload(session, upload)

        assert step is AppStep.LANDING
        assert session.error == "bad image"
        assert session.resume is None

    async def test_parse_failure_clears_persona(
        self, orchestrator, mock_llm, session, upload, persona_json, themes_json
    ):
        mock_llm.generate_json.side_effect = _make_dispatch(
            persona_json, RuntimeError("parse exploded"), themes_json
        )

        step = await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        assert step is AppStep.LANDING
        assert session.persona == ""
        assert session.error == "parse exploded"
        assert session.generating_themes is False
        assert [t.id for t in session.themes] == [BASELINE_THEME_ID]

    async def test_malformed_parse_payload_fails_once(
        self, orchestrator, mock_llm, session, upload, persona_json, themes_json
    ):
        mock_llm.generate_json.side_effect = _make_dispatch(
            persona_json, {"name": "Ada"}, themes_json
        )

        step = await orchestrator.process_upload(session, upload)

        assert step is AppStep.LANDING
        assert _prompts(mock_llm).count(PARSE_PROMPT) == 1

    async def test_theme_failure_keeps_editor(
        self, orchestrator, mock_llm, session, upload, persona_json, resume_json
    ):
        mock_llm.generate_json.side_effect = _make_dispatch(
            persona_json, resume_json, RuntimeError("themes down")
        )

        step = await orchestrator.process_upload(session, upload)

        assert step is AppStep.EDITING
        assert [t.id for t in session.themes] == [BASELINE_THEME_ID]
        assert session.generating_themes is False
        assert session.error is None

    async def test_image_quota_needs_configuration(self, orchestrator, llm_ok, session, upload):
        llm_ok.generate_image.side_effect = ThrottledError()

        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        assert session.step is AppStep.API_CONFIG
        assert session.error == QUOTA_NOTICE
        assert session.notices == [QUOTA_NOTICE]
        # applied data survives
        assert session.resume.name == "Ada"
        assert len(session.themes) == 4

    async def test_other_image_errors_are_logged_only(self, orchestrator, llm_ok, session, upload):
        llm_ok.generate_image.side_effect = RuntimeError("safety filter")

        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        assert session.step is AppStep.EDITING
        assert session.error is None


class TestStaleResults:
    async def test_images_from_previous_run_are_dropped(self, orchestrator, llm_ok, session, upload):
        await orchestrator.process_upload(session, upload)
        # a new run starts before the image tasks get to run
        session.begin_run()
        await orchestrator.drain()

        assert all(t.background_image is None for t in session.themes)

    async def test_cached_reentry_supersedes_run_in_flight(
        self, orchestrator, mock_llm, session, upload, persona_json, resume_json, themes_json
    ):
        release = asyncio.Event()
        parses = []

        async def dispatch(prompt, **kwargs):
            if prompt == PERSONA_PROMPT:
                return persona_json
            if prompt == PARSE_PROMPT:
                parses.append(kwargs["attachment"])
                if len(parses) > 1:
                    await release.wait()
                    return {**resume_json, "name": "Other"}
                return resume_json
            return themes_json

        mock_llm.generate_json.side_effect = dispatch
        await orchestrator.process_upload(session, upload)

        other = dataclasses.replace(upload, name="other.png")
        pending = asyncio.ensure_future(orchestrator.process_upload(session, other))
        for _ in range(50):
            if len(parses) == 2:
                break
            await asyncio.sleep(0)
        assert len(parses) == 2

        # the first file again, while the second is still parsing
        assert await orchestrator.process_upload(session, upload) is AppStep.EDITING
        release.set()
        await pending
        await orchestrator.drain()

        assert session.resume.name == "Ada"
        assert session.last_processed_key == upload.cache_key
        assert session.step is AppStep.EDITING
        assert len(session.themes) == 4


class TestReadyHook:
    async def test_hook_runs_once_after_parse(self, gateway, image_fallback, llm_ok, session, upload):
        seen = []

        async def on_ready(s):
            seen.append((s.step, s.resume.name))

        orchestrator = AnalysisOrchestrator(gateway, image_fallback, on_ready=on_ready)
        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        assert seen == [(AppStep.EDITING, "Ada")]

    async def test_hook_failure_is_contained(self, gateway, image_fallback, llm_ok, session, upload):
        async def on_ready(s):
            raise RuntimeError("diagnostic down")

        orchestrator = AnalysisOrchestrator(gateway, image_fallback, on_ready=on_ready)
        await orchestrator.process_upload(session, upload)
        await orchestrator.drain()

        assert session.step is AppStep.EDITING
