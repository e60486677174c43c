"""Shared test fixtures."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock

import pytest

from resume_aura.clients.genai_client import GenAIClient
from resume_aura.clients.llm_client import GeneratedImage, LLMResponse
from resume_aura.clients.retry import RetryPolicy
from resume_aura.models.resume import ResumeRecord
from resume_aura.parsers.upload import Upload
from resume_aura.pipeline.gateway import ModelGateway
from resume_aura.pipeline.image_fallback import ImageFallback
from resume_aura.pipeline.session import WorkflowSession

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


class ThrottledError(Exception):
    """Mimics the hosted backend's quota error text."""

    def __init__(self, message: str = "429 RESOURCE_EXHAUSTED: quota exceeded"):
        super().__init__(message)


class NotFoundError(Exception):
    def __init__(self, message: str = "404 NOT_FOUND. Requested entity was not found."):
        super().__init__(message)


@pytest.fixture
def image_data_uri() -> str:
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def upload(image_data_uri) -> Upload:
    return Upload(name="resume.png", size=1234, modified=1700000000000, data_uri=image_data_uri)


@pytest.fixture
def persona_json() -> dict:
    return {"persona": "Builder", "title": "Engineer", "roast": "Ships fast, documents never."}


@pytest.fixture
def resume_json() -> dict:
    return {
        "name": "Ada",
        "title": "Engineer",
        "contact": {"email": "a@b.com"},
        "summary": "Builds analytical engines.",
    }


@pytest.fixture
def full_resume_json() -> dict:
    return {
        "name": "Ada Lovelace",
        "title": "Senior Engineer",
        "contact": {
            "email": "ada@example.com",
            "phone": "+44 20 0000 0000",
            "location": "London",
            "github": "ada",
        },
        "summary": "Engineer focused on computing machinery.",
        "experience": [
            {
                "id": "exp-1",
                "company": "Analytical Engines Ltd",
                "position": "Lead Programmer",
                "period": "1842 - 1843",
                "description": ["Wrote the first published algorithm", "Cut card usage by 30%"],
            }
        ],
        "education": [
            {"id": "edu-1", "institution": "Home tutoring", "degree": "Mathematics", "year": "1835"}
        ],
        "skills": ["Mathematics", "Algorithms"],
    }


@pytest.fixture
def themes_json() -> list[dict]:
    return [
        {
            "name": f"Theme {i}",
            "description": f"Description {i}",
            "accentColor": "#ff0000",
            "secondaryColor": "#000000",
            "fontFamily": "Inter",
            "headingFont": "Space Grotesk",
            "style": f"Style {i}",
            "type": variant,
        }
        for i, variant in enumerate(["safe", "bold", "creative"])
    ]


@pytest.fixture
def custom_theme_json() -> dict:
    return {
        "name": "Neon Noir",
        "description": "Dark with neon accents",
        "accentColor": "#22d3ee",
        "secondaryColor": "#0f172a",
        "fontFamily": "JetBrains Mono",
        "headingFont": "Syne",
        "style": "Cyberpunk",
    }


@pytest.fixture
def resume_record(resume_json) -> ResumeRecord:
    return ResumeRecord.model_validate(resume_json)


@pytest.fixture
def mock_llm() -> GenAIClient:
    """Text backend mock with the shared generate/generate_json surface."""
    client = AsyncMock(spec=GenAIClient)
    client.generate = AsyncMock(
        return_value=LLMResponse(text="Looks good.", input_tokens=100, output_tokens=50)
    )
    client.generate_json = AsyncMock(return_value={})
    client.generate_image = AsyncMock(return_value=GeneratedImage(data=PNG_BYTES))
    return client


@pytest.fixture
def sleep_mock() -> AsyncMock:
    return AsyncMock(return_value=None)


@pytest.fixture
def fast_retry(sleep_mock) -> RetryPolicy:
    return RetryPolicy(max_retries=3, initial_delay=1.0, sleep=sleep_mock)


@pytest.fixture
def gateway(mock_llm, fast_retry) -> ModelGateway:
    return ModelGateway(mock_llm, retry=fast_retry)


@pytest.fixture
def image_fallback(gateway) -> ImageFallback:
    return ImageFallback(
        gateway,
        primary_model="pro-image",
        secondary_model="flash-image",
        primary_size="1K",
    )


@pytest.fixture
def session() -> WorkflowSession:
    return WorkflowSession(session_id="test-session")
