"""Shared fixtures for planner tests."""

import pytest

import config
from config import Settings
from generators import build_mock_roadmap
from models import Goal


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real credentials, local overrides and installed fonts out of every test."""
    for name in (
        "OPENAI_API_KEY",
        "USE_MOCK",
        "PLANNER_MODEL",
        "PLANNER_BASE_URL",
        "PLANNER_REQUEST_TIMEOUT",
        "PLANNER_MOCK_DELAY",
        "PLANNER_PDF_FONT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "FONT_CANDIDATES", ())


@pytest.fixture
def settings():
    def _build(**overrides) -> Settings:
        values = dict(
            api_key=None,
            use_mock=False,
            model="gpt-4o-mini",
            base_url=None,
            request_timeout=60.0,
            mock_delay=0.0,
            pdf_font=None,
        )
        values.update(overrides)
        return Settings(**values)

    return _build


@pytest.fixture
def spanish_goal():
    return Goal(text="Learn Spanish", timeframe_weeks=2, mentor_style="zen")


@pytest.fixture
def four_week_roadmap():
    return build_mock_roadmap(Goal(text="Run a 10k", timeframe_weeks=4, mentor_style="coach"))
