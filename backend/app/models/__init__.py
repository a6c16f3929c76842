"""Application models (story elements, choices, flows, vocabulary schema)."""
from .choices import (
    CandidateChoice,
    ChoiceDiagnostics,
    ChoiceFlow,
    ChoiceMeta,
    ChoiceResult,
    ChoiceSetReport,
    StoryElements,
    StorySegment,
)
from .vocabulary import ChoiceVocabulary

__all__ = [
    "CandidateChoice",
    "ChoiceDiagnostics",
    "ChoiceFlow",
    "ChoiceMeta",
    "ChoiceResult",
    "ChoiceSetReport",
    "StoryElements",
    "StorySegment",
    "ChoiceVocabulary",
]
