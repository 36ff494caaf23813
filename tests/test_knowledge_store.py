"""
Tests for KnowledgeStore loading, indexing and failure degradation.
"""

import json

import pytest
from pydantic import ValidationError

from eurotir.src.database.knowledge_store import DEFAULT_CATEGORY, DEFAULT_SUB_CATEGORY, KnowledgeItem, KnowledgeStore


class TestKnowledgeItem:

    def test_accepts_short_field_names(self):
        item = KnowledgeItem.model_validate({"Q": "q?", "A": "a."})
        assert item.question == "q?"
        assert item.answer == "a."

    def test_accepts_long_field_names_and_text(self):
        item = KnowledgeItem.model_validate({"question": "q?", "text": "a."})
        assert item.question == "q?"
        assert item.answer == "a."

    def test_category_defaults(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a"})
        assert item.category == DEFAULT_CATEGORY == "uncategorized"
        assert item.sub_category == DEFAULT_SUB_CATEGORY == "general"

    def test_category_lifted_from_metadata(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a", "metadata": {"category": "Services", "sub_category": "Customs"}})
        assert item.category == "Services"
        assert item.sub_category == "Customs"

    def test_unknown_priority_is_ignored(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a", "metadata": {"priority": "URGENT"}})
        assert item.metadata.priority is None

    def test_priority_is_case_insensitive(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a", "metadata": {"priority": "High"}})
        assert item.metadata.priority == "high"

    def test_empty_embedding_is_absent(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a", "embedding": []})
        assert item.embedding is None

    def test_null_metadata_uses_defaults(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a", "metadata": None})
        assert item.metadata.keywords == ()

    def test_null_alias_falls_through_to_next_variant(self):
        item = KnowledgeItem.model_validate({"Q": "other", "A": None, "answer": "fallback"})
        assert item.answer == "fallback"
        assert KnowledgeItem.model_validate({"Q": "  ", "question": "real?"}).question == "real?"

    def test_odd_metadata_values_are_tolerated(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a", "metadata": {"intent": 5, "keywords": "Book", "related_questions": "1", "context": ["x"]}})
        assert item.metadata.intent is None
        assert item.metadata.keywords == ("book",)
        assert item.metadata.related_questions == ()
        assert item.metadata.context is None

    def test_item_is_immutable(self):
        item = KnowledgeItem.model_validate({"Q": "q", "A": "a"})
        with pytest.raises(ValidationError):
            item.question = "changed"


class TestLoading:

    def test_load_from_sequence(self, sample_items):
        store = KnowledgeStore()
        assert store.load(sample_items) is True
        assert store.is_loaded
        assert len(store) == 5
        assert store.dimension == 3

    def test_load_from_file(self, tmp_path, sample_items):
        path = tmp_path / "kb.json"
        path.write_text(json.dumps(sample_items), encoding="utf-8")
        store = KnowledgeStore(source=path)
        assert store.load() is True
        assert store.get(0).question == "How do I book a collection?"

    def test_missing_file_does_not_raise(self, tmp_path):
        store = KnowledgeStore(source=tmp_path / "nope.json")
        assert store.load() is False
        assert not store.is_loaded
        assert len(store) == 0

    def test_corrupt_json_does_not_raise(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text("{not json", encoding="utf-8")
        store = KnowledgeStore()
        assert store.load(path) is False
        assert not store.is_loaded

    def test_non_list_payload_does_not_raise(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text(json.dumps({"Q": "q"}), encoding="utf-8")
        store = KnowledgeStore()
        assert store.load(path) is False

    def test_invalid_item_does_not_raise(self):
        store = KnowledgeStore()
        assert store.load([{"A": "answer without question"}]) is False
        assert not store.is_loaded

    def test_invalid_item_is_skipped_and_rest_loads(self):
        store = KnowledgeStore()
        assert store.load([{"Q": "good", "A": "a", "embedding": [1.0, 0.0]}, {"A": "answer without question"}, "not an object"]) is True
        assert len(store) == 1
        assert store.stats()["items"] == 1

    def test_null_answer_with_fallback_loads(self):
        store = KnowledgeStore()
        assert store.load([{"Q": "good", "A": "a"}, {"Q": "other", "A": None, "answer": "fallback"}]) is True
        assert [item.answer for _, item, _, _ in store.entries()] == ["a", "fallback"]

    def test_links_repointed_after_skipped_item(self):
        store = KnowledgeStore()
        store.load([{"Q": "a", "A": "a", "metadata": {"related_questions": [2, 1]}}, {"A": "no question"}, {"Q": "c", "A": "c"}])
        assert len(store) == 2
        assert store.related_ids(0) == [1]

    def test_empty_collection_is_not_loaded(self):
        store = KnowledgeStore()
        assert store.load([]) is False
        assert not store.is_loaded

    def test_failed_reload_resets_previous_content(self, sample_items, tmp_path):
        store = KnowledgeStore()
        store.load(sample_items)
        assert store.load(tmp_path / "missing.json") is False
        assert len(store) == 0
        assert store.ids_for_intent("booking") == frozenset()

    def test_reload_uses_last_source(self, tmp_path, sample_items):
        path = tmp_path / "kb.json"
        path.write_text(json.dumps(sample_items[:2]), encoding="utf-8")
        store = KnowledgeStore(source=path)
        store.load()
        path.write_text(json.dumps(sample_items), encoding="utf-8")
        assert store.reload() is True
        assert len(store) == 5


class TestDerivedData:

    def test_magnitudes_precomputed(self, loaded_store):
        entries = list(loaded_store.entries())
        _, _, vector, norm = entries[1]
        assert vector.tolist() == [0.9, 0.1, 0.0]
        assert norm == pytest.approx((0.81 + 0.01) ** 0.5)

    def test_item_without_embedding_has_no_vector(self, loaded_store):
        _, item, vector, norm = list(loaded_store.entries())[4]
        assert item.embedding is None
        assert vector is None
        assert norm == 0.0

    def test_non_finite_embedding_has_no_vector(self):
        store = KnowledgeStore()
        assert store.load([{"Q": "good", "A": "a", "embedding": [1.0, 0.0]}, {"Q": "corrupt", "A": "a", "embedding": [float("nan"), 1.0]}]) is True
        _, _, vector, norm = list(store.entries())[1]
        assert vector is None
        assert norm == 0.0
        assert store.dimension == 2

    def test_keyword_index_is_casefolded(self):
        store = KnowledgeStore()
        store.load([{"Q": "a", "A": "a", "metadata": {"keywords": ["Straße"]}}])
        assert store.ids_for_keyword("STRASSE") == frozenset({0})
        assert store.ids_for_keyword("straße") == frozenset({0})

    def test_keyword_index(self, loaded_store):
        assert loaded_store.ids_for_keyword("collection") == frozenset({0})
        assert loaded_store.ids_for_keyword("COST") == frozenset({1})
        assert loaded_store.ids_for_keyword("unknown") == frozenset()

    def test_intent_index(self, loaded_store):
        assert loaded_store.ids_for_intent("booking") == frozenset({0, 2})

    def test_category_indexes(self, loaded_store):
        assert loaded_store.ids_for_category("booking process") == frozenset({0, 2})
        assert loaded_store.ids_for_sub_category("Collections") == frozenset({0, 3})

    def test_related_ids_skip_invalid_links(self):
        store = KnowledgeStore()
        store.load([{"Q": "a", "A": "a", "metadata": {"related_questions": [1, 7, 0, -1]}}, {"Q": "b", "A": "b"}])
        assert store.related_ids(0) == [1]

    def test_stats(self, loaded_store):
        stats = loaded_store.stats()
        assert stats["loaded"] is True
        assert stats["items"] == 5
        assert stats["intents"] == 3

    def test_mixed_dimensions_have_no_shared_dimension(self):
        store = KnowledgeStore()
        store.load([{"Q": "a", "A": "a", "embedding": [1.0, 0.0]}, {"Q": "b", "A": "b", "embedding": [1.0, 0.0, 0.0]}])
        assert store.is_loaded
        assert store.dimension is None
