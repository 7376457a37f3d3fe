"""Phrase grouping: the cheap Jaccard-overlap path used when clustering is off or fails."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from checkpoint import RunContext
from labeler import average_intensity, emoji_for, recent_dates, recommendation_for, unique_texts
from lexicon import content_words, title_case
from models import Mention, Pattern, SubPattern
from settings import PatternSettings


def extract_phrases(text: str) -> List[str]:
    """2-3 word phrases of content words, plus the whole text when it is short.

    A mention too short for either still yields one phrase: its content word,
    or its trimmed text, so it always lands in a bucket.
    """
    words = content_words(text)
    phrases: Dict[str, None] = {}
    for i in range(len(words) - 1):
        bigram = f"{words[i]} {words[i + 1]}"
        if len(bigram) > 4:
            phrases.setdefault(bigram, None)
    for i in range(len(words) - 2):
        trigram = f"{words[i]} {words[i + 1]} {words[i + 2]}"
        if len(trigram) > 6:
            phrases.setdefault(trigram, None)
    if 4 < len(text) < 50:
        phrases.setdefault(text.lower(), None)
    if not phrases:
        fallback = words[0] if words else text.strip().lower()
        if fallback:
            phrases[fallback] = None
    return list(phrases)


def jaccard(a: str, b: str) -> float:
    words_a = set(a.split())
    words_b = set(b.split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


@dataclass
class PhraseStats:
    phrase: str
    mentions: List[Mention] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.mentions)


@dataclass
class PhraseBucket:
    anchor: str
    phrases: List[PhraseStats] = field(default_factory=list)
    mentions: List[Mention] = field(default_factory=list)


class PhraseGrouper:
    def __init__(self, settings: Optional[PatternSettings] = None):
        self.settings = settings or PatternSettings()

    def collect(self, mentions: Sequence[Mention], context: Optional[RunContext] = None) -> Dict[int, List[str]]:
        """Phrases per mention index, checkpointing every batch."""
        batch = self.settings.grouping_batch_size
        per_mention: Dict[int, List[str]] = {}
        total = len(mentions)
        for start in range(0, total, batch):
            if context is not None:
                context.check_abort("grouping")
            for offset, mention in enumerate(mentions[start:start + batch]):
                if mention.text:
                    per_mention[start + offset] = extract_phrases(mention.text)
            if context is not None:
                done = min(start + batch, total)
                context.checkpoint("analyzing", 0.3 + 0.3 * done / total)
        return per_mention

    def bucket(self, mentions: Sequence[Mention], per_mention: Dict[int, List[str]]) -> List[PhraseBucket]:
        stats: Dict[str, PhraseStats] = {}
        for idx in sorted(per_mention):
            for phrase in per_mention[idx]:
                stats.setdefault(phrase, PhraseStats(phrase)).mentions.append(mentions[idx])

        buckets: List[PhraseBucket] = []
        home: Dict[str, int] = {}
        ordered = list(stats.values())
        for pos, item in enumerate(ordered):
            if item.phrase in home:
                continue
            bucket_idx = len(buckets)
            bucket = PhraseBucket(anchor=item.phrase, phrases=[item])
            home[item.phrase] = bucket_idx
            for other in ordered[pos + 1:]:
                if other.phrase in home:
                    continue
                if jaccard(item.phrase, other.phrase) > self.settings.jaccard_threshold:
                    bucket.phrases.append(other)
                    home[other.phrase] = bucket_idx
            buckets.append(bucket)

        # A mention joins the earliest bucket holding any of its phrases, so
        # buckets never share mentions.
        for idx in sorted(per_mention):
            targets = [home[p] for p in per_mention[idx] if p in home]
            if targets:
                buckets[min(targets)].mentions.append(mentions[idx])

        return [b for b in buckets if b.mentions]

    def group(
        self,
        mentions: Sequence[Mention],
        context: Optional[RunContext] = None,
        total: Optional[int] = None,
    ) -> List[Pattern]:
        if not mentions:
            return []
        per_mention = self.collect(mentions, context)
        if context is not None:
            context.checkpoint("grouping", 0.6)
        buckets = self.bucket(mentions, per_mention)

        total = total or len(mentions)
        patterns: List[Pattern] = []
        batch = self.settings.building_batch_size
        for start in range(0, len(buckets), batch):
            if context is not None:
                context.check_abort("building")
            for offset, bucket in enumerate(buckets[start:start + batch]):
                patterns.append(self._build_pattern(f"fast_{start + offset}", bucket, total))
            if context is not None:
                done = min(start + batch, len(buckets))
                context.checkpoint("building", 0.7 + 0.1 * done / len(buckets))
        return patterns

    def _build_pattern(self, pattern_id: str, bucket: PhraseBucket, total: int) -> Pattern:
        members = bucket.mentions
        member_ids = {id(m) for m in members}
        subs: List[SubPattern] = []
        for item in sorted(bucket.phrases, key=lambda p: -p.count):
            scoped = [m for m in item.mentions if id(m) in member_ids]
            if not scoped:
                continue
            subs.append(
                SubPattern(
                    id="_".join(item.phrase.split()),
                    label=title_case(item.phrase),
                    frequency=len(scoped),
                    avg_impact=round(average_intensity(scoped), 1),
                    examples=[item.phrase],
                    dates=recent_dates(scoped, 5),
                    sources=scoped,
                    recommendation=recommendation_for(item.phrase, scoped),
                )
            )
            if len(subs) >= self.settings.max_sub_patterns:
                break

        frequency = len(members)
        return Pattern(
            id=pattern_id,
            label=title_case(bucket.anchor),
            emoji=emoji_for(bucket.anchor),
            frequency=frequency,
            percentage=round(frequency / total * 100),
            avg_impact=round(average_intensity(members), 1),
            sub_patterns=subs,
            examples=unique_texts(members, 5),
            dates=recent_dates(members, 10),
            sources=list(members),
        )
