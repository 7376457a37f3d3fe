"""Lexical feature extraction for mentions.

The tokenizer expands a mention into a bag of weighted features. Weight is
expressed by repetition: a feature emitted twice counts twice in TF.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Iterable, List, Optional, Set

from lexicon import (
    FILLER_VERBS,
    NAME_CONTEXT_PATTERNS,
    NEGATION_RE,
    PERSON_WORDS,
    STOP_WORDS,
    VERB_PREPOSITIONS,
    split_words,
)
from models import Mention

NEGATION_MARKER = "negation_marker"


def _is_content(word: str) -> bool:
    return len(word) > 2 and word not in STOP_WORDS


class NameDetector:
    """Discovers recurring person names from the contexts they appear in."""

    def __init__(self, min_count: int = 3):
        self.min_count = min_count

    def candidates(self, texts: Iterable[str]) -> Counter:
        counts: Counter = Counter()
        for text in texts:
            lowered = (text or "").lower()
            for pattern in NAME_CONTEXT_PATTERNS:
                for match in pattern.finditer(lowered):
                    name = match.group(1)
                    if len(name) > 2 and name not in STOP_WORDS:
                        counts[name] += 1
        return counts

    def detect(self, mentions: Iterable[Mention]) -> List[str]:
        """Return names seen at least ``min_count`` times, most frequent first."""
        counts = self.candidates(m.text for m in mentions)
        names = [(name, count) for name, count in counts.items() if count >= self.min_count]
        names.sort(key=lambda item: (-item[1], item[0]))
        return [name for name, _ in names]


class Tokenizer:
    """Turns mention text into the token list used for TF-IDF."""

    def __init__(self, detected_names: Optional[Set[str]] = None):
        self.detected_names = set(detected_names or ())

    def words(self, text: str) -> List[str]:
        return [w for w in split_words(text) if _is_content(w)]

    def verb_object_pairs(self, raw_words: List[str]) -> List[str]:
        """Compounds like ``verb_talking_marie`` or ``verb_visited_parents``.

        Runs on the unfiltered word list so prepositions are still visible.
        """
        pairs: List[str] = []
        n = len(raw_words)
        for i in range(n - 1):
            word = raw_words[i]
            if not _is_content(word):
                continue
            nxt = raw_words[i + 1]
            if nxt in VERB_PREPOSITIONS:
                obj_idx = i + 2
                if obj_idx < n and _is_content(raw_words[obj_idx]):
                    pairs.append(f"verb_{word}_{raw_words[obj_idx]}")
                    if obj_idx + 1 < n and _is_content(raw_words[obj_idx + 1]):
                        pairs.append(f"verb_{word}_{raw_words[obj_idx]}_{raw_words[obj_idx + 1]}")
            elif word.endswith("ing") and len(word) > 4 and _is_content(nxt):
                pairs.append(f"verb_{word}_{nxt}")
                if i + 2 < n and _is_content(raw_words[i + 2]):
                    pairs.append(f"verb_{word}_{nxt}_{raw_words[i + 2]}")
            elif word.endswith("ed") and len(word) > 3 and _is_content(nxt):
                pairs.append(f"verb_{word}_{nxt}")
        return pairs

    def persons(self, text: str, words: List[str]) -> List[str]:
        found: List[str] = []
        if self.detected_names:
            lowered = (text or "").lower()
            first_half = lowered[: math.ceil(len(lowered) / 2)]
            for name in sorted(self.detected_names):
                if name in first_half:
                    found.append(f"person_{name}")
        for word in words[:3]:
            if word in PERSON_WORDS:
                found.append(f"person_{word}")
        return found

    def tokenize(self, text: str) -> List[str]:
        lowered = (text or "").lower()
        raw_words = split_words(lowered)
        words = [w for w in raw_words if _is_content(w)]
        negated = bool(NEGATION_RE.search(lowered))

        tokens: List[str] = []
        for pair in self.verb_object_pairs(raw_words):
            tokens.extend((pair, pair))

        tokens.extend(self.persons(lowered, words))

        if negated and words:
            tokens.extend((NEGATION_MARKER, NEGATION_MARKER))

        for i in range(len(words) - 1):
            bigram = f"{words[i]} {words[i + 1]}"
            tokens.extend((bigram, bigram))
            if negated:
                tokens.append(f"neg_{bigram}")

        tokens.extend(words)

        for i in range(len(words) - 2):
            tokens.append(f"{words[i]} {words[i + 1]} {words[i + 2]}")

        for word in words:
            if len(word) >= 5:
                tokens.extend(f"char_{word[j:j + 4]}" for j in range(len(word) - 3))

        return tokens

    def tokenize_all(self, mentions: Iterable[Mention]) -> List[List[str]]:
        return [self.tokenize(m.text) for m in mentions]


def is_filler_verb(term: str) -> bool:
    return term in FILLER_VERBS
