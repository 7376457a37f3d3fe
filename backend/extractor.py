"""Turns daily entries into atomic mentions.

Entries arrive loosely shaped from the host (dataclasses, pydantic payloads or
plain dicts with snake_case or camelCase keys). Anything that does not look like
a usable entry is skipped without affecting the rest of the batch.
"""

from __future__ import annotations

import datetime as dt
import math
import re
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence

from checkpoint import RunContext
from models import Category, Mention
from settings import PatternSettings

_SPLIT_RE = re.compile(r"[,;]")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def entry_field(entry: Any, name: str) -> Any:
    """Read ``name`` from a mapping or object, accepting camelCase spellings."""
    if isinstance(entry, Mapping):
        if name in entry:
            return entry[name]
        return entry.get(_camel(name))
    value = getattr(entry, name, None)
    if value is None:
        value = getattr(entry, _camel(name), None)
    return value


def _coerce_date(value: Any) -> Optional[str]:
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def average_level(levels: Any, default: float) -> Optional[float]:
    """Mean of the non-null period values; ``None`` when the mapping is malformed."""
    if levels is None:
        return default
    if not isinstance(levels, Mapping):
        return None
    values = []
    for value in levels.values():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if math.isnan(value):
            continue
        values.append(float(value))
    if not values:
        return default
    return sum(values) / len(values)


class SourceExtractor:
    """Splits each entry's free text into mentions with the entry's mean intensity."""

    def __init__(self, settings: Optional[PatternSettings] = None):
        self.settings = settings or PatternSettings()

    def mentions_for_entry(self, entry: Any, category: Category) -> List[Mention]:
        if entry is None or isinstance(entry, (str, bytes)):
            return []
        text = entry_field(entry, category.text_field)
        if not isinstance(text, str) or not text.strip():
            return []
        date = _coerce_date(entry_field(entry, "date"))
        if date is None:
            return []
        intensity = average_level(entry_field(entry, category.levels_field), self.settings.default_intensity)
        if intensity is None:
            return []

        mentions = []
        for piece in _SPLIT_RE.split(text):
            original = piece.strip()
            fragment = original.lower()
            if len(fragment) < self.settings.min_mention_length:
                continue
            mentions.append(
                Mention(
                    text=fragment,
                    original_text=original,
                    full_entry_text=text,
                    intensity=intensity,
                    date=date,
                    entry_id=date,
                )
            )
        return mentions

    def extract(
        self,
        entries: Optional[Sequence[Any]],
        category: Category,
        context: Optional[RunContext] = None,
    ) -> List[Mention]:
        if not entries:
            return []
        entries = list(entries)
        batch = self.settings.entry_batch_size
        total = len(entries)
        mentions: List[Mention] = []
        for start in range(0, total, batch):
            if context is not None:
                context.check_abort("extracting")
            for entry in entries[start:start + batch]:
                mentions.extend(self.mentions_for_entry(entry, category))
            if context is not None:
                done = min(start + batch, total)
                context.checkpoint("extracting", 0.1 + 0.1 * done / total)
        return mentions
