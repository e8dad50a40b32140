"""Roadmap generation strategies.

Two interchangeable strategies produce a :class:`Roadmap` for a :class:`Goal`:

* ``RemoteRoadmapGenerator`` asks an OpenAI-compatible chat-completion model
  for the plan as JSON and validates it.
* ``MockRoadmapGenerator`` builds a deterministic, templated plan offline and
  never fails.

Both expose ``async generate(goal) -> Roadmap``. Composition (remote first,
mock on any ``GenerationError``) lives in ``graph.py``.
"""
import asyncio
from enum import Enum
from typing import Optional

import openai
from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from config import Settings, load_settings
from models import Goal, Roadmap, WeekPlan

TEMPERATURE = 0.7
MAX_TOKENS = 2000


# --- Errors ---

class ErrorKind(str, Enum):
    UNCONFIGURED = "unconfigured"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_FAILURE = "upstream_failure"
    MALFORMED_RESPONSE = "malformed_response"


class GenerationError(Exception):
    """A strategy could not produce a roadmap."""

    def __init__(self, kind: ErrorKind, reason: str, status: Optional[int] = None):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.kind.value} ({self.status}): {self.reason}"
        return f"{self.kind.value}: {self.reason}"

    @classmethod
    def unconfigured(cls, reason: str) -> "GenerationError":
        return cls(ErrorKind.UNCONFIGURED, reason)

    @classmethod
    def rate_limited(cls, reason: str) -> "GenerationError":
        return cls(ErrorKind.RATE_LIMITED, reason, status=429)

    @classmethod
    def upstream(cls, status: Optional[int], reason: str) -> "GenerationError":
        return cls(ErrorKind.UPSTREAM_FAILURE, reason, status=status)

    @classmethod
    def malformed(cls, reason: str) -> "GenerationError":
        return cls(ErrorKind.MALFORMED_RESPONSE, reason)


# --- Prompts ---

SYSTEM_PROMPT = (
    "You are an expert AI mentor. Given a goal, timeframe (weeks), and mentor style, "
    "generate a JSON roadmap with:\n"
    "- milestones (list of strings)\n"
    '- weeks: {{ "Week 1": {{ "tasks": [], "resources": [], "reflection": "", "mentorTip": "" }}, ... }}\n'
    "\n"
    "The mentor styles are:\n"
    "- coach: Direct, motivating, no-nonsense approach with tough-love language\n"
    "- zen: Peaceful, mindful, balanced guidance with calm wisdom\n"
    "- techbro: Energetic, ambitious, growth-focused with startup/tech terminology\n"
    "\n"
    "Make the plan practical, actionable, and tailored to the mentor style. Include specific tasks, "
    "real resources (URLs when possible), thoughtful reflections, and mentor tips that match the chosen style.\n"
    "\n"
    "Return ONLY valid JSON, no additional text."
)

USER_PROMPT = "Goal: {goal}\nTimeframe: {timeframe} weeks\nMentor Style: {mentor_style}"

ROADMAP_PROMPT = ChatPromptTemplate.from_messages([
    ("system", SYSTEM_PROMPT),
    ("human", USER_PROMPT),
])


# --- Payload parsing ---

ROADMAP_PARSER = JsonOutputParser()


def roadmap_from_payload(data, expected_weeks: Optional[int] = None) -> Roadmap:
    """Validates the JSON the model returned and builds the roadmap from it."""
    if not isinstance(data, dict):
        raise GenerationError.malformed("Model output is not a JSON object")
    if "milestones" not in data or "weeks" not in data:
        raise GenerationError.malformed("Roadmap is missing 'milestones' or 'weeks'")
    try:
        roadmap = Roadmap.model_validate({"milestones": data["milestones"], "weeks": data["weeks"]})
    except PydanticValidationError as error:
        raise GenerationError.malformed(f"Invalid roadmap structure: {error.error_count()} problem(s)") from error
    if expected_weeks is not None and roadmap.total_weeks != expected_weeks:
        raise GenerationError.malformed(
            f"Expected {expected_weeks} weeks, model returned {roadmap.total_weeks}"
        )
    return roadmap


# --- Remote strategy ---

class RemoteRoadmapGenerator:
    """Generates a roadmap with a chat-completion model."""

    name = "remote"

    def __init__(self, llm=None, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self._llm = llm

    def _chat_model(self):
        if self._llm is not None:
            return self._llm
        if self.settings.use_mock:
            raise GenerationError.unconfigured("Mock mode is enabled (USE_MOCK=true)")
        if not self.settings.api_key:
            raise GenerationError.unconfigured("OPENAI_API_KEY is not set")
        return ChatOpenAI(
            model=self.settings.model,
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
            timeout=self.settings.request_timeout,
            max_retries=0,
            api_key=self.settings.api_key,
            base_url=self.settings.base_url,
        )

    async def generate(self, goal: Goal) -> Roadmap:
        chain = ROADMAP_PROMPT | self._chat_model() | ROADMAP_PARSER
        try:
            data = await chain.ainvoke({
                "goal": goal.text,
                "timeframe": goal.timeframe_weeks,
                "mentor_style": goal.mentor_style,
            })
        except openai.RateLimitError as error:
            raise GenerationError.rate_limited(
                "Rate limit exceeded. Check your usage quota and billing status."
            ) from error
        except openai.APIStatusError as error:
            raise GenerationError.upstream(error.status_code, error.message) from error
        except openai.APIConnectionError as error:
            raise GenerationError.upstream(None, f"Could not reach the model endpoint: {error}") from error
        except OutputParserException as error:
            logger.debug(f"Unparsable model output: {str(error.llm_output or '')[:500]!r}")
            raise GenerationError.malformed("Failed to parse model output as JSON") from error

        return roadmap_from_payload(data, expected_weeks=goal.timeframe_weeks)


# --- Mock strategy ---

MENTOR_TIPS = {
    "coach": [
        "Push through the resistance! Champions are made in moments like these.",
        "No excuses, just execution. You've got this!",
        "The grind doesn't stop. Stay disciplined, stay hungry.",
        "Progress over perfection. Keep moving forward!",
    ],
    "zen": [
        "Be present with your progress. Each step is part of the journey.",
        "Breathe deeply and trust the process. Growth happens naturally.",
        "Find balance between effort and ease. You are exactly where you need to be.",
        "Embrace the challenges as teachers. They guide you to wisdom.",
    ],
    "techbro": [
        "Time to scale up! You're crushing it - let's 10x this momentum!",
        "Data-driven decisions FTW! Optimize everything, disrupt yourself!",
        "You're not just building a goal, you're building the future!",
        "Ship fast, learn faster! Your growth trajectory is exponential!",
    ],
}

DEFAULT_TIP = "Keep pushing forward!"


def get_mentor_tip(style: str, week: int) -> str:
    tips = MENTOR_TIPS.get(style)
    if not tips:
        return DEFAULT_TIP
    return tips[week % len(tips)]


def week_label(index: int) -> str:
    return f"Week {index}"


def build_mock_roadmap(goal: Goal) -> Roadmap:
    """Deterministic templated plan with one milestone and one week per timeframe week."""
    milestones = []
    weeks = {}
    for i in range(1, goal.timeframe_weeks + 1):
        milestones.append(f"Milestone {i}: Progress checkpoint for {goal.text}")
        weeks[week_label(i)] = WeekPlan(
            tasks=[
                f"Complete core task {i} for {goal.text}",
                "Review progress and adjust strategy",
                "Practice new skills learned this week",
                "Document learnings and insights",
            ],
            resources=[
                f"https://example.com/resource-week-{i}",
                f"https://example.com/tutorial-{i}",
                f"https://example.com/documentation-{i}",
            ],
            reflection=(
                f"Week {i} reflection: Focus on building momentum towards {goal.text}. "
                "What worked well? What needs adjustment?"
            ),
            mentor_tip=get_mentor_tip(goal.mentor_style, i),
        )
    return Roadmap(milestones=milestones, weeks=weeks)


class MockRoadmapGenerator:
    """Offline fallback. Always succeeds after a simulated, non-blocking delay."""

    name = "mock"

    def __init__(self, delay: Optional[float] = None, settings: Optional[Settings] = None):
        if delay is None:
            delay = (settings or load_settings()).mock_delay
        self.delay = delay

    async def generate(self, goal: Goal) -> Roadmap:
        if self.delay:
            await asyncio.sleep(self.delay)
        return build_mock_roadmap(goal)
