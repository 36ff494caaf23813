"""
Eurotir Assist - Context Assembler
==================================
Turns ranked matches into the context block handed to the generator.

Rules
-----
1. **Intent dedup** — an item whose intent was already emitted is
   skipped unless its score exceeds ``DUPLICATE_INTENT_SCORE`` (0.7).
2. **Early stop** — once the accumulated text exceeds the character
   budget, an item scoring above ``EARLY_STOP_SCORE`` (0.8) ends the
   walk.
3. **Related content** — procedural questions additionally get siblings
   of the top-ranked item: explicit ``related_questions`` links, then
   same-category, then same-sub-category items, each source capped and
   deduplicated by item index.
"""

from __future__ import annotations

from dataclasses import dataclass

from eurotir.config.settings import settings
from eurotir.src.core.query_analyzer import QueryAnalysis
from eurotir.src.core.scoring import ScoredMatch
from eurotir.src.database.knowledge_store import KnowledgeItem, KnowledgeStore
from eurotir.src.utils.logger import get_logger

logger = get_logger(__name__)

DUPLICATE_INTENT_SCORE = 0.7
EARLY_STOP_SCORE = 0.8

MAX_RELATED_LINKED = 3
MAX_RELATED_CATEGORY = 2
MAX_RELATED_SUB_CATEGORY = 2

RELATED_HEADER = "Related information:"


@dataclass(frozen=True, slots=True)
class AssembledContext:
    text: str
    related: tuple[KnowledgeItem, ...] = ()
    emitted: tuple[int, ...] = ()


class ContextAssembler:
    """
    Builds the human-readable context block for one query.

    Parameters
    ----------
    char_budget
        Length after which a high-confidence item stops the walk.
        Defaults to ``settings.CONTEXT_CHAR_BUDGET``.
    """

    __slots__ = ("_char_budget",)

    def __init__(self, char_budget: int | None = None) -> None:
        self._char_budget = char_budget if char_budget is not None else settings.CONTEXT_CHAR_BUDGET


    def assemble(self, matches: list[ScoredMatch], analysis: QueryAnalysis, store: KnowledgeStore) -> AssembledContext:
        if not matches:
            return AssembledContext(text="")

        blocks: list[str] = []
        length = 0
        seen_intents: set[str] = set()
        emitted: list[int] = []

        for match in matches:
            if length > self._char_budget and match.score > EARLY_STOP_SCORE:
                logger.debug("[CONTEXT] Budget %d exceeded at %d chars — stopping.", self._char_budget, length)
                break

            intent = match.item.metadata.intent
            if intent and intent in seen_intents and match.score <= DUPLICATE_INTENT_SCORE:
                logger.debug("[CONTEXT] Skipping duplicate intent '%s' (score=%.3f).", intent, match.score)
                continue

            block = self.format_block(match)
            blocks.append(block)
            length += len(block)
            emitted.append(match.index)
            if intent:
                seen_intents.add(intent)

        related: tuple[KnowledgeItem, ...] = ()
        if analysis.is_procedural:
            related = tuple(store.get(i) for i in self.related_indices(matches, store))
            if related:
                blocks.append(self.format_related(related))

        text = "\n\n".join(blocks)
        logger.debug("[CONTEXT] %d block(s), %d related, %d chars.", len(emitted), len(related), len(text))
        return AssembledContext(text=text, related=related, emitted=tuple(emitted))


    @staticmethod
    def related_indices(matches: list[ScoredMatch], store: KnowledgeStore) -> list[int]:
        """Related-content candidates of the top-ranked match, in source order."""
        top = matches[0]
        seen: set[int] = {m.index for m in matches}
        picked: list[int] = []

        def take(candidates: list[int], cap: int) -> None:
            taken = 0
            for idx in candidates:
                if taken >= cap:
                    break
                if idx in seen:
                    continue
                seen.add(idx)
                picked.append(idx)
                taken += 1

        take(store.related_ids(top.index), MAX_RELATED_LINKED)
        take(sorted(store.ids_for_category(top.item.category)), MAX_RELATED_CATEGORY)
        take(sorted(store.ids_for_sub_category(top.item.sub_category)), MAX_RELATED_SUB_CATEGORY)
        return picked


    @staticmethod
    def format_block(match: ScoredMatch) -> str:
        item = match.item
        meta = item.metadata

        tags: list[str] = []
        if meta.intent:
            tags.append(f"intent: {meta.intent}")
        if meta.priority:
            tags.append(f"priority: {meta.priority}")
        tags.append(f"category: {item.category} / {item.sub_category}")

        lines = [f"[{' | '.join(tags)}]", f"Q: {item.question}", f"A: {item.answer}"]
        if meta.context:
            lines.append(f"Context: {meta.context}")
        return "\n".join(lines)


    @staticmethod
    def format_related(items: tuple[KnowledgeItem, ...]) -> str:
        lines = [RELATED_HEADER]
        for item in items:
            lines.append(f"- Q: {item.question}\n  A: {item.answer}")
        return "\n".join(lines)
