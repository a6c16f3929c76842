"""Pydantic models for the choice engine vocabulary file (data/static/choice_vocabulary.yaml).

The file holds every word table the engine consults: extraction vocabularies and
blacklists, the template pools keyed by genre/tone, the guaranteed fallback pool,
grammar word classes and the leading-verb role table used by the set-level check.
"""
from __future__ import annotations

import re
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TEMPLATE_SECTIONS: tuple[str, ...] = ("character", "object", "location", "action")
PLACEHOLDERS: dict[str, str] = {
    "character": "[character]",
    "object": "[object]",
    "location": "[location]",
}
_PLACEHOLDER_RE = re.compile(r"\[(\w+)\]")


def _lower_unique(values: List[str]) -> List[str]:
    out: list[str] = []
    seen: set[str] = set()
    for v in values or []:
        token = str(v).strip().lower()
        if not token or token in seen:
            continue
        seen.add(token)
        out.append(token)
    return out


class CharacterTables(BaseModel):
    model_config = ConfigDict(extra="forbid")

    titles: List[str] = Field(default_factory=list)
    blacklist: List[str] = Field(default_factory=list)

    @field_validator("titles", "blacklist")
    @classmethod
    def _strip_entries(cls, v: List[str]) -> List[str]:
        return [str(x).strip() for x in v or [] if str(x).strip()]


class GenericNouns(BaseModel):
    """Substitutes used when the story's own elements run out."""
    model_config = ConfigDict(extra="forbid")

    characters: List[str] = Field(default_factory=list)
    objects: List[str] = Field(default_factory=list)
    locations: List[str] = Field(default_factory=list)

    @field_validator("characters", "objects", "locations")
    @classmethod
    def _normalize(cls, v: List[str]) -> List[str]:
        out = _lower_unique(v)
        if not out:
            raise ValueError("generic noun lists must not be empty")
        return out


class GrammarTables(BaseModel):
    model_config = ConfigDict(extra="forbid")

    articles: List[str]
    prepositions: List[str]
    conjunctions: List[str]
    auxiliaries: List[str]
    significance_stopwords: List[str] = Field(default_factory=list)

    @field_validator("articles", "prepositions", "conjunctions", "auxiliaries", "significance_stopwords")
    @classmethod
    def _normalize(cls, v: List[str]) -> List[str]:
        return _lower_unique(v)


class GenericTermTables(BaseModel):
    model_config = ConfigDict(extra="forbid")

    forbidden: List[str]
    verbs: List[str]
    bare_verbs: List[str]
    nonsense_verbs: List[str] = Field(default_factory=list)
    nonsense_objects: List[str] = Field(default_factory=list)

    @field_validator("forbidden", "verbs", "bare_verbs", "nonsense_verbs", "nonsense_objects")
    @classmethod
    def _normalize(cls, v: List[str]) -> List[str]:
        return _lower_unique(v)


class RoleVerbs(BaseModel):
    """Leading verbs that mark a choice as character-, object- or place/action-oriented."""
    model_config = ConfigDict(extra="forbid")

    character: List[str]
    object: List[str]
    place: List[str]

    @field_validator("character", "object", "place")
    @classmethod
    def _normalize(cls, v: List[str]) -> List[str]:
        return _lower_unique(v)


class NarrativeTables(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tension_words: List[str] = Field(default_factory=list)
    emotions: List[str] = Field(default_factory=list)
    traits: List[str] = Field(default_factory=list)
    default_goals: List[str] = Field(default_factory=list)

    @field_validator("tension_words", "emotions", "traits", "default_goals")
    @classmethod
    def _normalize(cls, v: List[str]) -> List[str]:
        return _lower_unique(v)


class GenreTables(BaseModel):
    model_config = ConfigDict(extra="forbid")

    aliases: Dict[str, List[str]]
    magic_cues: List[str] = Field(default_factory=list)
    default_tones: Dict[str, str]
    tone_cues: Dict[str, Dict[str, List[str]]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_defaults(self) -> "GenreTables":
        for genre in self.aliases:
            if genre not in self.default_tones:
                raise ValueError(f"genre '{genre}' has no default tone")
        return self


class TemplatePool(BaseModel):
    """Templates for one (genre, tone) pair, split by focus section."""
    model_config = ConfigDict(extra="forbid")

    character: List[str] = Field(default_factory=list)
    object: List[str] = Field(default_factory=list)
    location: List[str] = Field(default_factory=list)
    action: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_placeholders(self) -> "TemplatePool":
        for section in TEMPLATE_SECTIONS:
            for template in getattr(self, section):
                for name in _PLACEHOLDER_RE.findall(template):
                    if name not in PLACEHOLDERS:
                        raise ValueError(f"unknown placeholder [{name}] in template '{template}'")
                if section == "action" and _PLACEHOLDER_RE.search(template):
                    raise ValueError(f"action template must not contain placeholders: '{template}'")
                if section != "action" and PLACEHOLDERS[section] not in template:
                    raise ValueError(f"{section} template must contain {PLACEHOLDERS[section]}: '{template}'")
        return self

    def section(self, name: str) -> List[str]:
        return list(getattr(self, name, []) or [])

    def all_templates(self) -> list[tuple[str, str]]:
        """(section, template) pairs in table order."""
        return [(s, t) for s in TEMPLATE_SECTIONS for t in getattr(self, s)]


class ChoiceVocabulary(BaseModel):
    """Root of the vocabulary file."""
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    characters: CharacterTables
    objects: List[str]
    locations: List[str]
    locative_prepositions: List[str]
    generic: GenericNouns
    guaranteed_fallbacks: List[str]
    tropes: List[str] = Field(default_factory=list)
    grammar: GrammarTables
    generic_terms: GenericTermTables
    roles: RoleVerbs
    narrative: NarrativeTables = Field(default_factory=NarrativeTables)
    genres: GenreTables
    templates: Dict[str, Dict[str, TemplatePool]]

    @field_validator("objects", "locations", "locative_prepositions", "tropes")
    @classmethod
    def _normalize(cls, v: List[str]) -> List[str]:
        return _lower_unique(v)

    @field_validator("guaranteed_fallbacks")
    @classmethod
    def _require_fallbacks(cls, v: List[str]) -> List[str]:
        out = [str(x).strip() for x in v or [] if str(x).strip()]
        if len(out) < 3:
            raise ValueError("guaranteed_fallbacks needs at least three entries")
        return out

    @model_validator(mode="after")
    def _check_templates(self) -> "ChoiceVocabulary":
        if "default" not in self.templates or "default" not in self.templates["default"]:
            raise ValueError("templates.default.default pool is required")
        return self

    def pool(self, genre: str | None, tone: str | None) -> TemplatePool:
        """Template pool for (genre, tone); unknown pairs get the default pool."""
        by_tone = self.templates.get(genre or "") or {}
        found = by_tone.get(tone or "")
        if found is not None:
            return found
        return self.templates["default"]["default"]
