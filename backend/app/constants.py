"""Centralized tuning constants shared across the app."""
from __future__ import annotations

# Choice set UX contract: the reader always sees exactly this many options.
CHOICE_COUNT = 3

# Candidate generation: the generator produces between MIN and MAX candidates per segment
CANDIDATE_COUNT_MIN = 6
CANDIDATE_COUNT_MAX = 8

# Extraction caps (per element list)
MAX_CHARACTERS = 5
MAX_OBJECTS = 5
MAX_LOCATIONS = 5
# Modifier words allowed between an article and a vocabulary noun ("an old rusty key")
MAX_ELEMENT_MODIFIERS = 2

# Choice length bounds (exclusive on both ends)
CHOICE_MIN_LENGTH = 10
CHOICE_MAX_LENGTH = 60

# Generic verb + generic noun phrases of this many words or fewer are rejected
GENERIC_PHRASE_MAX_WORDS = 3

# Similarity: two choices may share at most this many significant words
MAX_SHARED_SIGNIFICANT_WORDS = 2
SIGNIFICANT_WORD_MIN_LENGTH = 4

# Repair: server choices shorter than this are replaced positionally
REPAIR_MIN_LENGTH = 10

# Narrative scoring weights
SCORE_PRESENT_ACTION = 30
SCORE_ENVIRONMENTAL_FOCUS = 25
SCORE_TENSION = 20
SCORE_COMPLETED_ACTION = -40
SCORE_TRAIT = 15
SCORE_EMOTION = 10
SCORE_TEMPORAL = 20

# Diagnostic ring buffer default capacity
CHOICE_FLOW_CAPACITY_DEFAULT = 3
