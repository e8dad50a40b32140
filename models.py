from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MentorStyle = Literal["coach", "zen", "techbro"]

MAX_TIMEFRAME_WEEKS = 52

MENTOR_STYLES = {
    "coach": {
        "label": "Coach (tough-love)",
        "icon": "💪",
        "description": "Direct, motivating, no-nonsense approach",
    },
    "zen": {
        "label": "Zen Monk (calm)",
        "icon": "🧘",
        "description": "Peaceful, mindful, balanced guidance",
    },
    "techbro": {
        "label": "Tech Bro (hype)",
        "icon": "🚀",
        "description": "Energetic, ambitious, growth-focused",
    },
}


# --- Pydantic Schemas ---

class Goal(BaseModel):
    """What the user wants to achieve, how long they give themselves and who mentors them."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="The user's stated objective.")
    timeframe_weeks: int = Field(ge=1, le=MAX_TIMEFRAME_WEEKS, description="Plan length in weeks.")
    mentor_style: MentorStyle = Field(default="coach", description="Tone preset for mentor tips.")

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("goal text must not be empty")
        return value


class WeekPlan(BaseModel):
    """Content for a single week of the roadmap."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tasks: List[str] = Field(default_factory=list, description="Ordered tasks for the week.")
    resources: List[str] = Field(default_factory=list, description="Resource URLs for the week.")
    reflection: str = Field(default="", description="Reflection prompt for the end of the week.")
    mentor_tip: str = Field(default="", alias="mentorTip", description="Persona-flavoured encouragement.")


class Roadmap(BaseModel):
    """Milestones plus per-week content.

    ``week_labels`` is the authoritative week order; ``weeks`` is only a lookup.
    When a payload does not provide the order explicitly it is taken from the
    order in which the generator emitted the week keys.
    """
    model_config = ConfigDict(frozen=True)

    milestones: List[str] = Field(description="Ordered milestone descriptions.")
    weeks: Dict[str, WeekPlan] = Field(description="Week label -> week content.")
    week_labels: List[str] = Field(default_factory=list, description="Week labels in plan order.")

    @model_validator(mode="before")
    @classmethod
    def _default_week_order(cls, data):
        if isinstance(data, dict) and not data.get("week_labels") and isinstance(data.get("weeks"), dict):
            data = {**data, "week_labels": list(data["weeks"].keys())}
        return data

    @model_validator(mode="after")
    def _check_week_order(self) -> "Roadmap":
        if not self.weeks:
            raise ValueError("roadmap must contain at least one week")
        if len(self.week_labels) != len(set(self.week_labels)) or set(self.week_labels) != set(self.weeks):
            raise ValueError("week_labels must list every week key exactly once")
        return self

    @property
    def total_weeks(self) -> int:
        return len(self.week_labels)

    @property
    def first_week(self) -> str:
        return self.week_labels[0]

    def has_week(self, label: str) -> bool:
        return label in self.weeks

    def iter_weeks(self):
        for label in self.week_labels:
            yield label, self.weeks[label]
