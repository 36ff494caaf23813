"""
Tests for context assembly: intent dedup, early stop and related content.
"""

from eurotir.src.core.context_builder import RELATED_HEADER, ContextAssembler
from eurotir.src.core.query_analyzer import QueryAnalysis
from eurotir.src.core.scoring import ScoredMatch


def _analysis(is_procedural=False):
    return QueryAnalysis(text="q", tokens=(), intent=None, is_procedural=is_procedural, department=None)


def _match(store, index, score):
    return ScoredMatch(index=index, item=store.get(index), base_score=score, final_score=score)


class TestFormatting:

    def test_block_format(self, loaded_store):
        block = ContextAssembler.format_block(_match(loaded_store, 0, 0.9))
        lines = block.split("\n")
        assert lines[0] == "[intent: booking | priority: high | category: Booking Process / Collections]"
        assert lines[1] == "Q: How do I book a collection?"
        assert lines[2].startswith("A: First request a quote")

    def test_block_without_metadata(self, loaded_store):
        block = ContextAssembler.format_block(_match(loaded_store, 4, 0.9))
        assert block.startswith("[category: Services / Coverage]\n")

    def test_context_line_when_present(self, raw_item):
        from eurotir.src.database.knowledge_store import KnowledgeStore

        store = KnowledgeStore()
        store.load([raw_item("q", "a", context="Applies to UK mainland only.")])
        assert ContextAssembler.format_block(_match(store, 0, 0.9)).endswith("\nContext: Applies to UK mainland only.")


class TestAssemble:

    def test_no_matches_gives_empty_context(self, loaded_store):
        context = ContextAssembler(char_budget=2000).assemble([], _analysis(), loaded_store)
        assert context.text == ""
        assert context.related == ()

    def test_blocks_joined_in_rank_order(self, loaded_store):
        matches = [_match(loaded_store, 1, 0.9), _match(loaded_store, 0, 0.8)]
        context = ContextAssembler(char_budget=2000).assemble(matches, _analysis(), loaded_store)
        assert context.emitted == (1, 0)
        assert context.text.index("What does a pallet cost?") < context.text.index("How do I book a collection?")
        assert "\n\n" in context.text

    def test_duplicate_intent_skipped_at_or_below_cutoff(self, loaded_store):
        # items 0 and 2 share the "booking" intent
        matches = [_match(loaded_store, 0, 0.9), _match(loaded_store, 2, 0.7)]
        context = ContextAssembler(char_budget=2000).assemble(matches, _analysis(), loaded_store)
        assert context.emitted == (0,)
        assert "Can I change a booking?" not in context.text

    def test_duplicate_intent_kept_above_cutoff(self, loaded_store):
        matches = [_match(loaded_store, 0, 0.9), _match(loaded_store, 2, 0.75)]
        context = ContextAssembler(char_budget=2000).assemble(matches, _analysis(), loaded_store)
        assert context.emitted == (0, 2)

    def test_early_stop_on_high_score_after_budget(self, loaded_store):
        matches = [_match(loaded_store, 0, 0.95), _match(loaded_store, 1, 0.9), _match(loaded_store, 3, 0.5)]
        context = ContextAssembler(char_budget=10).assemble(matches, _analysis(), loaded_store)
        assert context.emitted == (0,)

    def test_low_scores_continue_past_budget(self, loaded_store):
        matches = [_match(loaded_store, 0, 0.95), _match(loaded_store, 1, 0.6), _match(loaded_store, 3, 0.5)]
        context = ContextAssembler(char_budget=10).assemble(matches, _analysis(), loaded_store)
        assert context.emitted == (0, 1, 3)

    def test_no_related_content_for_non_procedural_queries(self, loaded_store):
        context = ContextAssembler(char_budget=2000).assemble([_match(loaded_store, 0, 0.9)], _analysis(), loaded_store)
        assert context.related == ()
        assert RELATED_HEADER not in context.text

    def test_related_content_for_procedural_queries(self, loaded_store):
        context = ContextAssembler(char_budget=2000).assemble([_match(loaded_store, 0, 0.9)], _analysis(is_procedural=True), loaded_store)
        assert [item.question for item in context.related] == ["Can I change a booking?", "Where is my delivery?"]
        assert RELATED_HEADER in context.text
        assert "- Q: Where is my delivery?\n  A: Use your booking reference" in context.text

    def test_related_skips_items_already_matched(self, loaded_store):
        matches = [_match(loaded_store, 0, 0.9), _match(loaded_store, 2, 0.85)]
        assert ContextAssembler.related_indices(matches, loaded_store) == [3]

    def test_related_falls_back_to_category_siblings(self, loaded_store):
        # item 2 has no explicit links; its category sibling is item 0
        assert ContextAssembler.related_indices([_match(loaded_store, 2, 0.9)], loaded_store) == [0]

    def test_related_category_cap(self, raw_item):
        from eurotir.src.database.knowledge_store import KnowledgeStore

        store = KnowledgeStore()
        store.load([raw_item(f"q{i}", "a", category="Shared", sub_category=f"s{i}") for i in range(5)])
        assert ContextAssembler.related_indices([_match(store, 0, 0.9)], store) == [1, 2]
