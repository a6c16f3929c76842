"""Choice engine records: extracted story elements, candidates, flows and diagnostics.

All models are JSON-serializable and constructible without DB calls.
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Candidate focus (template section the candidate came from)
FOCUS_CHARACTER = "character"
FOCUS_OBJECT = "object"
FOCUS_LOCATION = "location"
FOCUS_ACTION = "action"
FOCUS_CYCLE: tuple[str, ...] = (FOCUS_CHARACTER, FOCUS_OBJECT, FOCUS_LOCATION)

Focus = Literal["character", "object", "location", "action"]

# Choice flow sources
SOURCE_SERVER = "server"
SOURCE_CLIENT_PATCHED = "client-template-patched"

ChoiceSource = Literal["server", "client-template-patched"]


class StoryElements(BaseModel):
    """Entities extracted from one passage. Built fresh per call, never persisted."""
    model_config = ConfigDict(frozen=True)

    characters: tuple[str, ...] = ()
    objects: tuple[str, ...] = ()
    locations: tuple[str, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all(self) -> tuple[str, ...]:
        """Ordered union of characters, objects and locations without duplicates."""
        out: list[str] = []
        seen: set[str] = set()
        for item in (*self.characters, *self.objects, *self.locations):
            key = item.lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(item)
        return tuple(out)

    @property
    def vocabulary(self) -> frozenset[str]:
        """Lowercase word set of every element (multi-word elements split)."""
        return frozenset(w for item in self.all for w in item.lower().split())

    @property
    def is_empty(self) -> bool:
        return not (self.characters or self.objects or self.locations)

    def elements_for(self, focus: str) -> tuple[str, ...]:
        if focus == FOCUS_CHARACTER:
            return self.characters
        if focus == FOCUS_OBJECT:
            return self.objects
        if focus == FOCUS_LOCATION:
            return self.locations
        return ()


class CandidateChoice(BaseModel):
    """One generated choice before selection."""
    text: str
    element_used: str | None = None
    score: int = 0
    focus: Focus = FOCUS_ACTION
    template: str = ""
    grounded: bool = False  # every substituted element came from the story itself


class ChoiceFlow(BaseModel):
    """One diagnostic record of how a segment's choices were decided."""
    timestamp: float
    segment_id: str | None = None
    source: ChoiceSource
    engine_version: str
    original_choices: list[str] | None = None
    final_choices: list[str]
    validation_passed: bool


class ChoiceMeta(BaseModel):
    source: ChoiceSource
    engine_version: str
    choices: list[str]


class NarrativePosition(BaseModel):
    """Where the passage currently stands: ongoing and finished actions, focus place, tension."""
    current_actions: list[str] = Field(default_factory=list)
    completed_actions: list[str] = Field(default_factory=list)
    environmental_focus: str | None = None
    tension_points: list[str] = Field(default_factory=list)


class CharacterPerspective(BaseModel):
    emotion: str | None = None
    traits: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)


class ValidationTrace(BaseModel):
    """Why a candidate or fallback was accepted or rejected."""
    choice: str
    is_valid: bool
    reasons: list[str] = Field(default_factory=list)
    element_used: str | None = None
    score: int = 0
    is_temporally_valid: bool = True
    is_fallback: bool = False
    fallback_tier: str | None = None


class ChoiceDiagnostics(BaseModel):
    elements: StoryElements = Field(default_factory=StoryElements)
    genre: str = ""
    tone: str = ""
    narrative_position: NarrativePosition = Field(default_factory=NarrativePosition)
    perspective: CharacterPerspective = Field(default_factory=CharacterPerspective)
    timeline: list[str] = Field(default_factory=list)
    candidates: list[CandidateChoice] = Field(default_factory=list)
    traces: list[ValidationTrace] = Field(default_factory=list)
    states: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    set_check_passed: bool | None = None


class ChoiceResult(BaseModel):
    choices: list[str]
    diagnostics: ChoiceDiagnostics | None = None


class ChoiceSetReport(BaseModel):
    """Outcome of the set-level contract check on a list of choices."""
    valid: bool
    reasons: list[str] = Field(default_factory=list)
    per_choice: dict[str, list[str]] = Field(default_factory=dict)
    roles: list[str | None] = Field(default_factory=list)


class StorySegment(BaseModel):
    """Normalized story segment as returned to the reader."""
    id: str | None = None
    story_id: str | None = None
    text: str
    choices: list[str]
    is_end: bool = False
    image_url: str | None = None
    image_generation_status: str = "pending"
    choice_source: ChoiceSource = SOURCE_SERVER
    engine_version: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
