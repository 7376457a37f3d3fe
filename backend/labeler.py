"""Human-readable labels, emoji and advice for discovered clusters."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from lexicon import (
    DEFAULT_EMOJI,
    EMOJI_GROUPS,
    HIGH_INTENSITY_ADVICE,
    LOW_INTENSITY_ADVICE,
    RECOMMENDATIONS,
    RELATIONSHIP_WORDS,
    content_words,
    title_case,
)
from models import Mention, SubPattern
from settings import PatternSettings
from tokenizer import Tokenizer

# Length preference by word count; anything longer gets the last value.
_LENGTH_PREFERENCE = (2.0, 1.5, 0.8, 0.3)

CORE_WORD_WEIGHT = 3.0
LAST_TWO_WEIGHT = 2.5
BIGRAM_WEIGHT = 1.0
FULL_TEXT_WEIGHT = 0.5


def average_intensity(mentions: Sequence[Mention]) -> float:
    if not mentions:
        return 0.0
    return sum(m.intensity for m in mentions) / len(mentions)


def recent_dates(mentions: Iterable[Mention], limit: int) -> List[str]:
    """Distinct dates, newest first."""
    return sorted({m.date for m in mentions}, reverse=True)[:limit]


def unique_texts(mentions: Iterable[Mention], limit: int) -> List[str]:
    return list(dict.fromkeys(m.text for m in mentions))[:limit]


def emoji_for(text: str) -> str:
    lowered = (text or "").lower()
    for emoji, pattern in EMOJI_GROUPS:
        if pattern.search(lowered):
            return emoji
    return DEFAULT_EMOJI


def recommendation_for(phrase: str, mentions: Sequence[Mention]) -> Optional[str]:
    lowered = (phrase or "").lower()
    for keywords, advice in RECOMMENDATIONS:
        if any(k in lowered for k in keywords):
            return advice
    avg = average_intensity(mentions)
    if avg > 7:
        return HIGH_INTENSITY_ADVICE
    if mentions and avg < 4:
        return LOW_INTENSITY_ADVICE
    return None


class LabelSynthesizer:
    def __init__(self, settings: Optional[PatternSettings] = None):
        self.settings = settings or PatternSettings()

    @staticmethod
    def mention_concepts(text: str) -> List[Tuple[str, float]]:
        """Weighted label candidates contributed by one mention."""
        text = text.lower().strip()
        words = content_words(text)
        concepts: List[Tuple[str, float]] = []
        if words:
            concepts.append((words[-1], CORE_WORD_WEIGHT))
            if len(words) >= 2:
                concepts.append((f"{words[-2]} {words[-1]}", LAST_TWO_WEIGHT))
        for i in range(len(words) - 1):
            concepts.append((f"{words[i]} {words[i + 1]}", BIGRAM_WEIGHT))
        concepts.append((text, FULL_TEXT_WEIGHT))
        return concepts

    def concept_scores(self, mentions: Sequence[Mention]) -> Tuple[Dict[str, float], Dict[str, int]]:
        """Accumulated weight per concept and the number of mentions carrying it."""
        scores: Dict[str, float] = {}
        members: Dict[str, int] = {}
        for mention in mentions:
            seen: Set[str] = set()
            for concept, weight in self.mention_concepts(mention.text):
                scores[concept] = scores.get(concept, 0.0) + weight
                if concept not in seen:
                    seen.add(concept)
                    members[concept] = members.get(concept, 0) + 1
        return scores, members

    def label(self, mentions: Sequence[Mention], detected_names: Optional[Set[str]] = None) -> str:
        """Pick the shortest, most shared concept in the cluster."""
        if not mentions:
            return "Pattern"
        if len(mentions) == 1:
            return title_case(mentions[0].text)

        names = detected_names or set()
        size = len(mentions)
        scores, members = self.concept_scores(mentions)
        best_concept = None
        best_score = 0.0

        for concept, weight in scores.items():
            coverage = members[concept] / size
            word_count = len(concept.split())
            if word_count == 1 and (concept in names or concept in RELATIONSHIP_WORDS):
                if coverage < self.settings.name_dominance:
                    continue

            score = weight * _LENGTH_PREFERENCE[min(word_count, len(_LENGTH_PREFERENCE)) - 1]
            if coverage >= self.settings.coverage_bonus_ratio:
                score *= self.settings.coverage_bonus

            if score > best_score:
                best_score = score
                best_concept = concept

        if not best_concept:
            best_concept = mentions[0].text
        return title_case(best_concept)

    def sub_patterns(self, mentions: Sequence[Mention], tokenizer: Optional[Tokenizer] = None) -> List[SubPattern]:
        """Group a cluster's mentions by their leading phrase feature."""
        tokenizer = tokenizer or Tokenizer()
        groups: Dict[str, List[Mention]] = {}
        for mention in mentions:
            tokens = tokenizer.tokenize(mention.text)
            phrases = [t for t in tokens if " " in t]
            if phrases:
                key = phrases[0]
            elif tokens:
                key = tokens[0]
            else:
                key = mention.text
            groups.setdefault(key, []).append(mention)

        subs = [self._build_sub_pattern(key, items, examples=3) for key, items in groups.items()]
        subs.sort(key=lambda sub: -sub.frequency)
        return subs[: self.settings.max_sub_patterns]

    def _build_sub_pattern(self, phrase: str, items: List[Mention], examples: int) -> SubPattern:
        return SubPattern(
            id="_".join(phrase.split()),
            label=title_case(phrase),
            frequency=len(items),
            avg_impact=round(average_intensity(items), 1),
            examples=unique_texts(items, examples),
            dates=recent_dates(items, 5),
            sources=list(items),
            recommendation=recommendation_for(phrase, items),
        )
