"""Service layer that runs pattern discovery end to end."""

from __future__ import annotations

import time
import traceback
from typing import Any, Callable, Dict, List, Optional, Sequence

from checkpoint import AnalysisAborted, RunContext
from clusterer import AgglomerativeClusterer
from extractor import SourceExtractor, entry_field
from grouping import PhraseGrouper
from labeler import LabelSynthesizer, average_intensity, emoji_for, recent_dates, unique_texts
from models import AnalysisResult, Category, Cluster, DiscoveryMethod, Mention, Pattern, ProgressUpdate
from settings import PatternSettings
from tokenizer import NameDetector, Tokenizer
from vectorizer import TfidfVectorizer, cosine_similarity_matrix

ALGORITHM_TFIDF = "tfidf"
ALGORITHM_PHRASE_GROUPING = "phrase_grouping"

AbortPredicate = Callable[[], bool]
ProgressCallback = Callable[[ProgressUpdate], None]


def filter_patterns(
    patterns: Sequence[Pattern],
    total_mentions: int,
    settings: Optional[PatternSettings] = None,
) -> List[Pattern]:
    """Keep patterns with enough absolute mentions, largest first.

    Falls back to the top few patterns when none qualify, so a finished run
    over non-empty data always shows something.
    """
    settings = settings or PatternSettings()
    if not patterns or total_mentions <= 0:
        return []
    min_frequency = settings.min_frequency_large if total_mentions > settings.large_corpus_size else settings.min_frequency
    ranked = sorted(patterns, key=lambda p: -p.frequency)
    kept = [p for p in ranked if p.frequency >= min_frequency]
    if not kept:
        print(f"pattern_service: no pattern reached {min_frequency} mentions, keeping top {settings.fallback_patterns}")
        kept = ranked[: settings.fallback_patterns]
    return kept[: settings.max_patterns]


def data_readiness(entries: Optional[Sequence[Any]], target_days: int = 10, ready_days: int = 7) -> Dict[str, Any]:
    """How close the user is to having enough annotated days for discovery."""
    entries = list(entries or [])
    days_with_sources = 0
    for entry in entries:
        if entry is None:
            continue
        for category in Category:
            text = entry_field(entry, category.text_field)
            if isinstance(text, str) and text.strip():
                days_with_sources += 1
                break
    return {
        "days_with_sources": days_with_sources,
        "total_days": len(entries),
        "progress_percentage": min(100.0, days_with_sources / target_days * 100) if target_days else 100.0,
        "days_remaining": max(0, target_days - days_with_sources),
        "has_enough_data": days_with_sources >= ready_days,
    }


class PatternService:
    """Extracts mentions, discovers their themes and filters the result."""

    def __init__(
        self,
        settings: PatternSettings | None = None,
        extractor: SourceExtractor | None = None,
        clusterer: AgglomerativeClusterer | None = None,
        labeler: LabelSynthesizer | None = None,
        grouper: PhraseGrouper | None = None,
        vectorizer: TfidfVectorizer | None = None,
    ):
        self.settings = settings or PatternSettings()
        self.extractor = extractor or SourceExtractor(self.settings)
        self.clusterer = clusterer or AgglomerativeClusterer(self.settings)
        self.labeler = labeler or LabelSynthesizer(self.settings)
        self.grouper = grouper or PhraseGrouper(self.settings)
        self.vectorizer = vectorizer or TfidfVectorizer()
        self.name_detector = NameDetector(min_count=self.settings.name_min_count)

    def run(
        self,
        entries: Optional[Sequence[Any]],
        category: Category | str = Category.STRESS,
        should_abort: Optional[AbortPredicate] = None,
        on_progress: Optional[ProgressCallback] = None,
        algorithm: str = ALGORITHM_TFIDF,
        context: Optional[RunContext] = None,
    ) -> AnalysisResult:
        """Analyze one category. Raises ``AnalysisAborted`` when cancelled."""
        category = Category(category)
        context = context or RunContext(should_abort=should_abort, on_progress=on_progress)
        requested = DiscoveryMethod.TFIDF if algorithm == ALGORITHM_TFIDF else DiscoveryMethod.PHRASE_GROUPING

        try:
            context.checkpoint("preparing", 0.0)
            mentions = self.extractor.extract(entries, category, context)
            if not mentions:
                context.checkpoint("complete", 1.0)
                return AnalysisResult(category=category, total_mentions=0, main_patterns=[], discovery_method=requested)

            patterns: List[Pattern] = []
            method = DiscoveryMethod.PHRASE_GROUPING
            if algorithm == ALGORITHM_TFIDF:
                started = time.perf_counter()
                try:
                    patterns = self.cluster_with_tfidf(mentions, context)
                    method = DiscoveryMethod.TFIDF
                    print(f"pattern_service: tf-idf clustering finished in {(time.perf_counter() - started) * 1000:.0f}ms")
                except AnalysisAborted:
                    raise
                except Exception as exc:
                    print(f"pattern_service: tf-idf clustering failed, falling back to phrase grouping: {exc}")
                    patterns = []
                if not patterns:
                    print("pattern_service: tf-idf produced no patterns, using phrase grouping")
                    method = DiscoveryMethod.PHRASE_GROUPING
            elif algorithm != ALGORITHM_PHRASE_GROUPING:
                print(f"pattern_service: unknown algorithm '{algorithm}', using phrase grouping")

            if method == DiscoveryMethod.PHRASE_GROUPING:
                context.checkpoint("analyzing with phrase grouping", 0.3)
                patterns = self.grouper.group(mentions, context)

            context.checkpoint("filtering", 0.8)
            main_patterns = filter_patterns(patterns, len(mentions), self.settings)
            context.checkpoint("complete", 1.0)
            return AnalysisResult(
                category=category,
                total_mentions=len(mentions),
                main_patterns=main_patterns,
                discovery_method=method,
            )
        except AnalysisAborted:
            raise
        except Exception as exc:
            print(f"pattern_service: analysis failed for {category.value}: {exc}")
            traceback.print_exc()
            return AnalysisResult(category=category, total_mentions=0, main_patterns=[], discovery_method=DiscoveryMethod.ERROR)

    def cluster_with_tfidf(self, mentions: Sequence[Mention], context: RunContext) -> List[Pattern]:
        context.checkpoint("detecting names", 0.2)
        # Names come from the whole corpus, not just the sample.
        context.detected_names = set(self.name_detector.detect(mentions))
        if context.detected_names:
            print(f"pattern_service: detected names {sorted(context.detected_names)}")

        sample = self.clusterer.sample(mentions)
        if len(sample) < len(mentions):
            print(f"pattern_service: sampled {len(sample)} of {len(mentions)} mentions")

        context.checkpoint("tokenizing", 0.3)
        tokenizer = Tokenizer(context.detected_names)
        documents = tokenizer.tokenize_all(sample)

        context.checkpoint("calculating tf-idf", 0.4)
        vectors = self.vectorizer.fit_transform(documents)

        context.checkpoint("building similarities", 0.5)
        similarity = cosine_similarity_matrix(vectors.matrix)

        context.checkpoint("clustering", 0.6)
        result = self.clusterer.cluster(sample, similarity, context)

        context.checkpoint("generating labels", 0.7)
        return self.patterns_from_clusters(result.clusters, len(sample), tokenizer, context)

    def patterns_from_clusters(
        self,
        clusters: Sequence[Cluster],
        total: int,
        tokenizer: Tokenizer,
        context: RunContext,
    ) -> List[Pattern]:
        patterns: List[Pattern] = []
        batch = self.settings.building_batch_size
        for idx, cluster in enumerate(clusters):
            if not cluster.mentions:
                continue
            label = self.labeler.label(cluster.mentions, context.detected_names)
            frequency = len(cluster.mentions)
            patterns.append(
                Pattern(
                    id=f"tfidf_{idx}",
                    label=label,
                    emoji=emoji_for(label),
                    frequency=frequency,
                    percentage=round(frequency / total * 100),
                    avg_impact=round(average_intensity(cluster.mentions), 1),
                    sub_patterns=self.labeler.sub_patterns(cluster.mentions, tokenizer),
                    examples=unique_texts(cluster.mentions, 5),
                    dates=recent_dates(cluster.mentions, 10),
                    sources=list(cluster.mentions),
                )
            )
            if (idx + 1) % batch == 0:
                context.checkpoint("generating labels", 0.7 + 0.1 * (idx + 1) / len(clusters))
        return patterns

    def analyze_all(
        self,
        entries: Optional[Sequence[Any]],
        should_abort: Optional[AbortPredicate] = None,
        on_progress: Optional[ProgressCallback] = None,
        algorithm: str = ALGORITHM_TFIDF,
    ) -> Dict[Category, AnalysisResult]:
        """Stress then energy; each takes half of the progress range."""
        results: Dict[Category, AnalysisResult] = {}
        for offset, category in ((0.0, Category.STRESS), (0.5, Category.ENERGY)):
            context = RunContext(
                should_abort=should_abort,
                on_progress=on_progress,
                progress_offset=offset,
                progress_scale=0.5,
            )
            results[category] = self.run(entries, category, algorithm=algorithm, context=context)
        return results
