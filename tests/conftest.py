"""
Shared fixtures.

Settings are instantiated at import time and require ``GOOGLE_API_KEY``;
a dummy key is set here, before any ``eurotir`` module is imported.
"""

import os

os.environ.setdefault("GOOGLE_API_KEY", "test-key-not-real")

import pytest

from eurotir.src.database.knowledge_store import KnowledgeStore


def _raw_item(question, answer, embedding=None, category=None, sub_category=None, **metadata):
    item = {"Q": question, "A": answer}
    if embedding is not None:
        item["embedding"] = list(embedding)
    if category is not None:
        item["category"] = category
    if sub_category is not None:
        item["sub_category"] = sub_category
    if metadata:
        item["metadata"] = metadata
    return item


@pytest.fixture
def raw_item():
    """Factory for raw (source-format) knowledge items."""
    return _raw_item


@pytest.fixture
def sample_items():
    """Small 3-dimensional knowledge base with varied metadata."""
    return [
        _raw_item("How do I book a collection?", "First request a quote, then confirm the address. Finally we send a booking reference.", [1.0, 0.0, 0.0], category="Booking Process", sub_category="Collections", keywords=["book", "collection"], intent="booking", priority="high", related_questions=[2, 3]),
        _raw_item("What does a pallet cost?", "Prices depend on weight and destination.", [0.9, 0.1, 0.0], category="Sales", sub_category="Quotes", keywords=["price", "cost", "pallet"], intent="pricing", priority="medium"),
        _raw_item("Can I change a booking?", "Yes, call the operations office before the collection date.", [0.0, 1.0, 0.0], category="Booking Process", sub_category="Changes", intent="booking"),
        _raw_item("Where is my delivery?", "Use your booking reference on the tracking page.", [0.0, 0.0, 1.0], category="Operations", sub_category="Collections", keywords=["track"], intent="tracking"),
        _raw_item("Do you have a depot in Spain?", "We partner with agents in Madrid and Barcelona.", None, category="Services", sub_category="Coverage"),
    ]


@pytest.fixture
def loaded_store(sample_items):
    store = KnowledgeStore(source=sample_items)
    assert store.load() is True
    return store
