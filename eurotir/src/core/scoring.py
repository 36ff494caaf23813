"""
Eurotir Assist - Scoring & Ranking
==================================
Turns cosine similarity into a bounded, metadata-aware relevance score
and picks the top-K matches.

``Scorer``
    ``final = min(1.0, base + Σ boosts)`` where ``base`` is the cosine
    similarity between query and item embeddings.  Boost components are
    additive and individually capped; a non-positive ``base`` is never
    rescued by boosts.

``Ranker``
    Sorts with the tie-break chain *procedural content → final score →
    priority weight*, truncates to ``MAX_CONTEXT_ITEMS`` and only then
    drops items that do not exceed ``SIMILARITY_THRESHOLD``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from eurotir.config.query_rules import PROCESS_CATEGORY_RE
from eurotir.config.settings import settings
from eurotir.src.core.query_analyzer import QueryAnalysis, has_procedural_markers
from eurotir.src.database.knowledge_store import KnowledgeItem, KnowledgeStore
from eurotir.src.utils.logger import get_logger
from eurotir.src.utils.vector_math import INVALID_SIMILARITY, Vector, as_vector, cosine_similarity, magnitude

logger = get_logger(__name__)

# Upper bound of the keyword component, whatever the unit weight
KEYWORD_BOOST_CAP = 0.3

PRIORITY_WEIGHTS: dict[str | None, int] = {"high": 3, "medium": 2, "low": 1, None: 1}


# ══════════════════════════════════════════════════════════════════════
#  VALUE TYPES
# ══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class BoostWeights:
    """Unit weights of every boost component."""

    keyword: float = 0.1
    intent: float = 0.2
    category: float = 0.1
    procedural: float = 0.15
    priority_high: float = 0.1
    priority_medium: float = 0.05
    priority_low: float = 0.0
    total_cap: float | None = None

    @classmethod
    def from_settings(cls) -> BoostWeights:
        return cls(keyword=settings.KEYWORD_BOOST, intent=settings.INTENT_BOOST, category=settings.CATEGORY_BOOST, procedural=settings.PROCEDURAL_BOOST, priority_high=settings.PRIORITY_BOOST_HIGH, priority_medium=settings.PRIORITY_BOOST_MEDIUM, priority_low=settings.PRIORITY_BOOST_LOW, total_cap=settings.BOOST_TOTAL_CAP)

    def priority(self, level: str | None) -> float:
        if level == "high":
            return self.priority_high
        if level == "medium":
            return self.priority_medium
        if level == "low":
            return self.priority_low
        return 0.0


@dataclass(frozen=True, slots=True)
class BoostBreakdown:
    keyword: float = 0.0
    intent: float = 0.0
    category: float = 0.0
    procedural: float = 0.0
    priority: float = 0.0
    total: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {"keyword": self.keyword, "intent": self.intent, "category": self.category, "procedural": self.procedural, "priority": self.priority, "total": self.total}


NO_BOOSTS = BoostBreakdown()


@dataclass(frozen=True, slots=True)
class ScoredMatch:
    """One scored candidate for one query (ephemeral)."""

    index: int
    item: KnowledgeItem
    base_score: float
    boosts: BoostBreakdown = field(default=NO_BOOSTS)
    final_score: float = 0.0
    has_procedural_content: bool = False

    @property
    def score(self) -> float:
        return self.final_score

    @property
    def priority_weight(self) -> int:
        return PRIORITY_WEIGHTS.get(self.item.metadata.priority, 1)


# ══════════════════════════════════════════════════════════════════════
#  SCORER
# ══════════════════════════════════════════════════════════════════════


class Scorer:
    """
    Combines cosine similarity with additive metadata boosts.

    Parameters
    ----------
    weights
        Boost unit weights.  Defaults to the values in ``settings``.
    """

    __slots__ = ("_weights",)

    def __init__(self, weights: BoostWeights | None = None) -> None:
        self._weights = weights or BoostWeights.from_settings()


    @property
    def weights(self) -> BoostWeights:
        return self._weights


    def score_all(self, store: KnowledgeStore, analysis: QueryAnalysis, query_embedding: Vector | None) -> list[ScoredMatch]:
        """Score every item of *store*.  Unscorable items get ``base_score = -1``."""
        query = as_vector(query_embedding)
        query_norm = magnitude(query) if query is not None else 0.0

        if query is not None and store.dimension is not None and query.size != store.dimension:
            logger.warning("[SCORER] Query dimension %d does not match knowledge base dimension %d.", query.size, store.dimension)

        return [self.score_item(idx, item, vector, norm, analysis, query, query_norm) for idx, item, vector, norm in store.entries()]


    def score_item(self, index: int, item: KnowledgeItem, vector: np.ndarray | None, vector_norm: float, analysis: QueryAnalysis, query: np.ndarray | None, query_norm: float | None = None) -> ScoredMatch:
        procedural_content = has_procedural_markers(item.answer)
        base = cosine_similarity(query, vector, vector_norm, query_norm) if vector is not None else INVALID_SIMILARITY

        # Negative, zero or NaN similarity is returned as-is (no boosts)
        if not base > 0:
            return ScoredMatch(index=index, item=item, base_score=base, final_score=base, has_procedural_content=procedural_content)

        boosts = self.compute_boosts(item, analysis, procedural_content)
        final = min(1.0, base + boosts.total)
        return ScoredMatch(index=index, item=item, base_score=base, boosts=boosts, final_score=final, has_procedural_content=procedural_content)


    def compute_boosts(self, item: KnowledgeItem, analysis: QueryAnalysis, procedural_content: bool | None = None) -> BoostBreakdown:
        w = self._weights
        meta = item.metadata

        matches = self.count_keyword_matches(meta.keywords, analysis.tokens)
        keyword = min(KEYWORD_BOOST_CAP, matches * w.keyword)

        intent = w.intent if analysis.intent is not None and meta.intent == analysis.intent else 0.0

        category = 0.0
        procedural = 0.0
        if analysis.is_procedural:
            if PROCESS_CATEGORY_RE.search(item.category) or PROCESS_CATEGORY_RE.search(item.sub_category):
                category = w.category
            if procedural_content is None:
                procedural_content = has_procedural_markers(item.answer)
            if procedural_content:
                procedural = w.procedural

        priority = w.priority(meta.priority)

        total = keyword + intent + category + procedural + priority
        if w.total_cap is not None:
            total = min(total, w.total_cap)

        return BoostBreakdown(keyword=keyword, intent=intent, category=category, procedural=procedural, priority=priority, total=total)


    @staticmethod
    def count_keyword_matches(keywords: tuple[str, ...], tokens: tuple[str, ...]) -> int:
        """A keyword matches if it is a substring of any token, or any token is a substring of it."""
        count = 0
        for keyword in keywords:
            kw = keyword.casefold()
            if any(kw in token or token in kw for token in tokens):
                count += 1
        return count


# ══════════════════════════════════════════════════════════════════════
#  RANKER
# ══════════════════════════════════════════════════════════════════════


class Ranker:
    """
    Top-K selection with a similarity floor.

    Parameters
    ----------
    max_items
        Top-K window.  Defaults to ``settings.MAX_CONTEXT_ITEMS``.
    threshold
        A match must score strictly above this.  Defaults to
        ``settings.SIMILARITY_THRESHOLD``.
    procedural_first
        When ``True`` (default) the procedural-content check is applied
        before the score comparison for procedural queries; when
        ``False`` it only breaks exact score ties.
    """

    __slots__ = ("_max_items", "_threshold", "_procedural_first")

    def __init__(self, max_items: int | None = None, threshold: float | None = None, procedural_first: bool | None = None) -> None:
        self._max_items = max_items if max_items is not None else settings.MAX_CONTEXT_ITEMS
        self._threshold = threshold if threshold is not None else settings.SIMILARITY_THRESHOLD
        self._procedural_first = procedural_first if procedural_first is not None else settings.PROCEDURAL_TIEBREAK_FIRST


    @property
    def max_items(self) -> int:
        return self._max_items


    @property
    def threshold(self) -> float:
        return self._threshold


    def sort(self, candidates: list[ScoredMatch], is_procedural: bool) -> list[ScoredMatch]:
        """Order *candidates* best-first.  Python's stable sort keeps store order for full ties."""

        def key(match: ScoredMatch) -> tuple:
            procedural = 1 if (is_procedural and match.has_procedural_content) else 0
            if self._procedural_first:
                return (procedural, match.final_score, match.priority_weight)
            return (match.final_score, procedural, match.priority_weight)

        return sorted(candidates, key=key, reverse=True)


    def rank(self, candidates: list[ScoredMatch], is_procedural: bool) -> list[ScoredMatch]:
        """Sort, truncate to the top-K window, then apply the threshold filter."""
        ordered = self.sort(candidates, is_procedural)
        window = ordered[: self._max_items]
        selected = [m for m in window if m.final_score > self._threshold]
        logger.debug("[RANK] %d candidates → top %d → %d above threshold %.2f.", len(candidates), len(window), len(selected), self._threshold)
        return selected
