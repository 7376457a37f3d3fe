"""Shared backend models for the pattern discovery engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    ENERGY = "energy"
    STRESS = "stress"

    @property
    def text_field(self) -> str:
        return f"{self.value}_sources"

    @property
    def levels_field(self) -> str:
        return f"{self.value}_levels"


class DiscoveryMethod(str, Enum):
    TFIDF = "tfidf_clustering"
    PHRASE_GROUPING = "phrase_grouping"
    ERROR = "error"


@dataclass
class DailyEntry:
    """One day of annotations as handed over by the host application."""

    date: str
    energy_sources: str = ""
    stress_sources: str = ""
    energy_levels: Dict[str, Optional[float]] = field(default_factory=dict)
    stress_levels: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class Mention:
    """A single comma/semicolon separated fragment of an entry's text."""

    text: str
    original_text: str
    full_entry_text: str
    intensity: float
    date: str
    entry_id: str


@dataclass
class Cluster:
    id: int
    mentions: List[Mention]
    indices: List[int]

    @property
    def size(self) -> int:
        return len(self.indices)


@dataclass
class ClusteringResult:
    clusters: List[Cluster]
    iterations: int
    merges: int
    final_threshold: float
    iteration_ceiling: int


@dataclass
class SubPattern:
    id: str
    label: str
    frequency: int
    avg_impact: float
    examples: List[str] = field(default_factory=list)
    dates: List[str] = field(default_factory=list)
    sources: List[Mention] = field(default_factory=list)
    recommendation: Optional[str] = None


@dataclass
class Pattern:
    id: str
    label: str
    emoji: str
    frequency: int
    percentage: int
    avg_impact: float
    sub_patterns: List[SubPattern] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    dates: List[str] = field(default_factory=list)
    sources: List[Mention] = field(default_factory=list)


@dataclass
class AnalysisResult:
    category: Category
    total_mentions: int
    main_patterns: List[Pattern]
    discovery_method: DiscoveryMethod


@dataclass(frozen=True)
class ProgressUpdate:
    stage: str
    fraction: float


# API payloads

class DailyEntryPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str
    energy_sources: Optional[str] = Field(default=None, alias="energySources")
    stress_sources: Optional[str] = Field(default=None, alias="stressSources")
    energy_levels: Dict[str, Optional[float]] = Field(default_factory=dict, alias="energyLevels")
    stress_levels: Dict[str, Optional[float]] = Field(default_factory=dict, alias="stressLevels")

    def to_entry(self) -> DailyEntry:
        return DailyEntry(
            date=self.date,
            energy_sources=self.energy_sources or "",
            stress_sources=self.stress_sources or "",
            energy_levels=dict(self.energy_levels),
            stress_levels=dict(self.stress_levels),
        )


class MentionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    original_text: str = Field(alias="originalText")
    full_entry_text: str = Field(alias="fullEntryText")
    intensity: float
    date: str
    entry_id: str = Field(alias="entryId")

    @classmethod
    def from_mention(cls, mention: Mention) -> "MentionPayload":
        return cls(
            text=mention.text,
            original_text=mention.original_text,
            full_entry_text=mention.full_entry_text,
            intensity=mention.intensity,
            date=mention.date,
            entry_id=mention.entry_id,
        )


class SubPatternPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    frequency: int
    avg_impact: float = Field(alias="avgImpact")
    examples: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)
    sources: List[MentionPayload] = Field(default_factory=list)
    recommendation: Optional[str] = None


class PatternPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    emoji: str
    frequency: int
    percentage: int
    avg_impact: float = Field(alias="avgImpact")
    sub_patterns: List[SubPatternPayload] = Field(default_factory=list, alias="subPatterns")
    examples: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)
    sources: List[MentionPayload] = Field(default_factory=list)

    @classmethod
    def from_pattern(cls, pattern: Pattern) -> "PatternPayload":
        return cls(
            id=pattern.id,
            label=pattern.label,
            emoji=pattern.emoji,
            frequency=pattern.frequency,
            percentage=pattern.percentage,
            avg_impact=pattern.avg_impact,
            sub_patterns=[
                SubPatternPayload(
                    id=sub.id,
                    label=sub.label,
                    frequency=sub.frequency,
                    avg_impact=sub.avg_impact,
                    examples=list(sub.examples),
                    dates=list(sub.dates),
                    sources=[MentionPayload.from_mention(m) for m in sub.sources],
                    recommendation=sub.recommendation,
                )
                for sub in pattern.sub_patterns
            ],
            examples=list(pattern.examples),
            dates=list(pattern.dates),
            sources=[MentionPayload.from_mention(m) for m in pattern.sources],
        )


class AnalysisResultPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: Category
    total_mentions: int = Field(alias="totalMentions")
    main_patterns: List[PatternPayload] = Field(default_factory=list, alias="mainPatterns")
    discovery_method: DiscoveryMethod = Field(alias="discoveryMethod")

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResultPayload":
        return cls(
            category=result.category,
            total_mentions=result.total_mentions,
            main_patterns=[PatternPayload.from_pattern(p) for p in result.main_patterns],
            discovery_method=result.discovery_method,
        )


# Request payloads

class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entries: List[DailyEntryPayload] = Field(default_factory=list)
    category: Category = Category.STRESS
    algorithm: str = "tfidf"
    run_id: Optional[str] = Field(default=None, alias="runId")


class AbortRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(alias="runId")


class ReadinessRequest(BaseModel):
    entries: List[DailyEntryPayload] = Field(default_factory=list)


class ReadinessPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days_with_sources: int = Field(alias="daysWithSources")
    total_days: int = Field(alias="totalDays")
    progress_percentage: float = Field(alias="progressPercentage")
    days_remaining: int = Field(alias="daysRemaining")
    has_enough_data: bool = Field(alias="hasEnoughData")


class RunProgressPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(alias="runId")
    stage: str = ""
    fraction: float = 0.0
    finished: bool = False
