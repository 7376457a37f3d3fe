"""Closed-class English word lists shared by the tokenizer, labeler and grouper.

Only structural vocabulary lives here (articles, pronouns, prepositions,
relationship nouns, topic cues). Nothing user specific.
"""

from __future__ import annotations

import re
from typing import List, Pattern, Set, Tuple

STOP_WORDS: Set[str] = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "can", "this", "that",
    "these", "those", "i", "you", "he", "she", "it", "we", "they",
    "what", "which", "who", "when", "where", "why", "how", "all", "each",
    "every", "both", "few", "more", "most", "other", "some", "such",
    "only", "own", "same", "so", "than", "too", "very", "just", "now",
    # filler gerunds
    "feeling", "being", "having", "doing", "getting", "making",
}

# Generic verbs are down-weighted in TF-IDF so they do not pull unrelated
# mentions together.
FILLER_VERBS: Set[str] = {
    "feeling", "seeing", "playing", "doing", "having", "getting",
    "making", "taking", "being", "going", "coming", "working",
    "thinking", "wanting", "needing", "trying", "looking", "watching",
    "talking", "saying", "knowing", "meeting", "visiting",
}

VERB_PREPOSITIONS: Set[str] = {"with", "to", "about", "for", "from", "at"}

NEGATION_WORDS: Set[str] = {"no", "not", "lack", "without", "missing"}

NEGATION_RE = re.compile(r"\b(?:no|not|lack|without|missing)\b")

# Relationship nouns that mark a person when they open a mention.
PERSON_WORDS: Set[str] = {
    "parents", "mom", "dad", "mother", "father",
    "friend", "friends", "family", "colleague",
    "partner", "spouse", "child", "children",
}

# Relationship nouns that are too generic to be a pattern label on their own.
RELATIONSHIP_WORDS: Set[str] = {
    "mom", "dad", "mother", "father", "parents",
    "friend", "colleague", "partner", "spouse",
}

# Context patterns that announce a person's name in the captured group.
NAME_CONTEXT_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\b(?:with|seeing|meeting|calling|texting|visiting|hugging|kissing)\s+([a-z]+)\b"),
    re.compile(r"\b(?:talking|speaking)\s+(?:to|with)\s+([a-z]+)\b"),
    re.compile(r"\b([a-z]+)\s+(?:feeling|said|told|asked|invited|called|texted|complained|laughed)\b"),
    re.compile(r"(?:\band|&)\s+([a-z]+)\s+(?:and|went|did|had|was|were|came|left)\b"),
    re.compile(r"\b(?:lunch|dinner|breakfast|coffee|walk|time)\s+with\s+([a-z]+)\b"),
    re.compile(r"\b(?:my|his|her|our)\s+([a-z]+)\b"),
]

DEFAULT_EMOJI = "📊"

# Ordered: the first matching group wins.
EMOJI_GROUPS: List[Tuple[str, Pattern[str]]] = [
    ("💼", re.compile(r"\b(?:work|project|deadline|meeting|client|task|job)\b")),
    ("😴", re.compile(r"\b(?:sleep|rest|tired|exhausted|bed|night)\b")),
    ("🏃", re.compile(r"\b(?:bike|cycling|ride|exercise|workout|gym|run|walk)\b")),
    ("🏥", re.compile(r"\b(?:sick|ill|pain|headache|doctor|health)\b")),
    ("👥", re.compile(r"\b(?:friend|family|social|people|conversation|party)\b")),
    ("🎬", re.compile(r"\b(?:series|documentary|movie|watching|tv|show)\b")),
    ("🍳", re.compile(r"\b(?:cook|meal|food|eating|dining)\b")),
    ("🎵", re.compile(r"\b(?:music|song|playlist|listening)\b")),
    ("💻", re.compile(r"\b(?:computer|laptop|software|technical|bug|error)\b")),
    ("💰", re.compile(r"\b(?:money|financial|budget|bill|cost|expense)\b")),
    ("🚗", re.compile(r"\b(?:traffic|commute|drive|travel)\b")),
    ("📋", re.compile(r"\b(?:bureaucracy|government|paperwork|administration)\b")),
    ("🧘", re.compile(r"\b(?:alone|solitude|quiet|peace|privacy)\b")),
]

# (keywords, advice) checked in order against a phrase.
RECOMMENDATIONS: List[Tuple[Tuple[str, ...], str]] = [
    (("deadline", "pressure"), "Schedule buffer time before deadlines"),
    (("bike", "cycling", "ride"), "Regular cycling boosts energy - maintain consistent schedule"),
    (("series", "watching"), "Balance screen time with other activities"),
    (("sleep", "tired"), "Prioritize consistent sleep schedule"),
    (("bureaucracy", "government"), "Plan for delays with external processes"),
    (("alone", "solitude"), "Schedule regular alone time to recharge"),
]

HIGH_INTENSITY_ADVICE = "This consistently boosts your energy - do more of this"
LOW_INTENSITY_ADVICE = "Consider strategies to reduce this stressor"

_PUNCT_RE = re.compile(r"[^\w\s]")


def strip_punctuation(text: str) -> str:
    return _PUNCT_RE.sub(" ", (text or "").lower())


def split_words(text: str) -> List[str]:
    """Lower-case, drop punctuation, split on whitespace."""
    return strip_punctuation(text).split()


def content_words(text: str) -> List[str]:
    """Words longer than two characters that are not stop-words."""
    return [w for w in split_words(text) if len(w) > 2 and w not in STOP_WORDS]


def title_case(text: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in (text or "").replace("_", " ").split(" "))
