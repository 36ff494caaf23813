"""
Eurotir Assist - KnowledgeStore
===============================
In-memory home of the support knowledge base.  Provides a clean
interface for:
  • Loading a JSON collection of Q/A items with precomputed embeddings
  • Precomputing vector magnitudes for cosine similarity
  • Secondary indexes: keyword, intent, category, sub-category

Design decisions:
  • **Never raises on load** — a missing or corrupt source leaves the
    store empty and ``is_loaded`` false; every query then degrades to
    "no matches" instead of crashing the service.  A single malformed
    record is skipped on its own; the remaining records still load.
  • **Snapshot swap** — items, vectors, magnitudes and all four indexes
    are built into a private ``_Snapshot`` and published with a single
    assignment, so a reader never observes a half-built index set.
  • **Read-only between loads** — safe to share across any number of
    concurrent requests without locking.

Usage:
    from eurotir.src.database.knowledge_store import KnowledgeStore

    store = KnowledgeStore()
    store.load()                       # defaults to settings.KNOWLEDGE_BASE_PATH
    for index, item, vector, norm in store.entries():
        ...
"""

from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Iterator, Literal, Sequence

import numpy as np
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator

from eurotir.config.settings import settings
from eurotir.src.utils.logger import get_logger
from eurotir.src.utils.vector_math import as_vector, is_finite_vector, magnitude

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
Priority = Literal["high", "medium", "low"]
KnowledgeSource = str | Path | Sequence[dict[str, Any]]
StoreEntry = tuple[int, "KnowledgeItem", np.ndarray | None, float]

DEFAULT_CATEGORY = "uncategorized"
DEFAULT_SUB_CATEGORY = "general"


# ══════════════════════════════════════════════════════════════════════
#  DATA MODEL
# ══════════════════════════════════════════════════════════════════════


class KnowledgeMetadata(BaseModel):
    """Optional ranking hints attached to a knowledge item."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    keywords: tuple[str, ...] = ()
    intent: str | None = None
    priority: Priority | None = None
    related_questions: tuple[int, ...] = Field(default=(), validation_alias=AliasChoices("related_questions", "relatedQuestions"))
    context: str | None = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _clean_keywords(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(str(k).strip().casefold() for k in v if str(k).strip())


    @field_validator("intent", "context", mode="before")
    @classmethod
    def _text_or_none(cls, v: Any) -> Any:
        if not isinstance(v, str) or not v.strip():
            return None
        return v.strip()


    @field_validator("priority", mode="before")
    @classmethod
    def _normalise_priority(cls, v: Any) -> Any:
        # Unknown priorities are ignored rather than failing the whole load
        if not isinstance(v, str):
            return None
        v = v.strip().lower()
        return v if v in ("high", "medium", "low") else None


    @field_validator("related_questions", mode="before")
    @classmethod
    def _int_links(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(i for i in v if isinstance(i, int) and not isinstance(i, bool))


class KnowledgeItem(BaseModel):
    """
    One question/answer record of the knowledge base.

    Accepts both field-name variants found in knowledge files:
    ``Q``/``question`` and ``A``/``answer``/``text``.  ``category`` and
    ``sub_category`` may live at item level or inside ``metadata``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    question: str = Field(validation_alias=AliasChoices("Q", "question"))
    answer: str = Field(default="", validation_alias=AliasChoices("A", "answer", "text"))
    category: str = DEFAULT_CATEGORY
    sub_category: str = Field(default=DEFAULT_SUB_CATEGORY, validation_alias=AliasChoices("sub_category", "subCategory"))
    metadata: KnowledgeMetadata = Field(default_factory=KnowledgeMetadata)
    embedding: tuple[float, ...] | None = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        # First non-empty variant wins; a null "A" falls through to "answer" / "text"
        question = _first_present(data, "Q", "question")
        answer = _first_present(data, "A", "answer", "text")
        for key in ("Q", "question", "A", "answer", "text"):
            data.pop(key, None)
        if question is not None:
            data["question"] = question
        data["answer"] = answer if answer is not None else ""

        if data.get("metadata") is None:
            data.pop("metadata", None)
        meta = data.get("metadata") or {}
        if not isinstance(meta, dict):
            return data
        if not data.get("category") and meta.get("category"):
            data["category"] = meta["category"]
        if not (data.get("sub_category") or data.get("subCategory")) and meta.get("sub_category"):
            data["sub_category"] = meta["sub_category"]
        return data


    @field_validator("category", "sub_category", mode="before")
    @classmethod
    def _default_blank(cls, v: Any, info: ValidationInfo) -> Any:
        if not isinstance(v, str) or not v.strip():
            return DEFAULT_CATEGORY if info.field_name == "category" else DEFAULT_SUB_CATEGORY
        return v


    @field_validator("embedding", mode="before")
    @classmethod
    def _empty_embedding(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)) or not v:
            return None
        return v

    def summary(self) -> dict[str, str]:
        return {"question": self.question, "answer": self.answer, "category": self.category, "subCategory": self.sub_category}


def _first_present(data: dict[str, Any], *keys: str) -> str | None:
    """Value of the first *keys* entry that is not null / blank, as a string."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        text = value if isinstance(value, str) else str(value)
        if text.strip():
            return text
    return None


def _finite_or_none(vector: np.ndarray | None) -> np.ndarray | None:
    # NaN / inf embeddings are treated as missing so the item scores -1
    if vector is None or is_finite_vector(vector):
        return vector
    logger.warning("[STORE] Embedding with non-finite components ignored.")
    return None


# ══════════════════════════════════════════════════════════════════════
#  SNAPSHOT
# ══════════════════════════════════════════════════════════════════════


class _Snapshot:
    """Immutable bundle of everything a single ``load()`` produces."""

    __slots__ = ("items", "vectors", "magnitudes", "keyword_index", "intent_index", "category_index", "sub_category_index", "dimension")

    def __init__(self, items: list[KnowledgeItem]) -> None:
        self.items: tuple[KnowledgeItem, ...] = tuple(items)
        self.vectors: tuple[np.ndarray | None, ...] = tuple(_finite_or_none(as_vector(item.embedding)) for item in items)
        self.magnitudes: tuple[float, ...] = tuple(magnitude(v) if v is not None else 0.0 for v in self.vectors)

        keyword_index: dict[str, set[int]] = defaultdict(set)
        intent_index: dict[str, set[int]] = defaultdict(set)
        category_index: dict[str, set[int]] = defaultdict(set)
        sub_category_index: dict[str, set[int]] = defaultdict(set)

        for idx, item in enumerate(items):
            for keyword in item.metadata.keywords:
                keyword_index[keyword.casefold()].add(idx)
            if item.metadata.intent:
                intent_index[item.metadata.intent.casefold()].add(idx)
            category_index[item.category.casefold()].add(idx)
            sub_category_index[item.sub_category.casefold()].add(idx)

        self.keyword_index: dict[str, frozenset[int]] = {k: frozenset(v) for k, v in keyword_index.items()}
        self.intent_index: dict[str, frozenset[int]] = {k: frozenset(v) for k, v in intent_index.items()}
        self.category_index: dict[str, frozenset[int]] = {k: frozenset(v) for k, v in category_index.items()}
        self.sub_category_index: dict[str, frozenset[int]] = {k: frozenset(v) for k, v in sub_category_index.items()}

        dims = sorted({v.size for v in self.vectors if v is not None})
        self.dimension: int | None = dims[0] if len(dims) == 1 else None
        if len(dims) > 1:
            logger.warning("[STORE] Mixed embedding dimensions %s — mismatched items will score -1.", dims)


_EMPTY = _Snapshot([])


# ══════════════════════════════════════════════════════════════════════
#  KNOWLEDGE STORE
# ══════════════════════════════════════════════════════════════════════


class KnowledgeStore:
    """
    Process-lifetime, read-mostly store of knowledge items.

    Parameters
    ----------
    source
        Optional default source for ``load()`` / ``reload()``.  Defaults
        to ``settings.KNOWLEDGE_BASE_PATH``.
    """

    __slots__ = ("_source", "_snapshot", "_loaded")

    def __init__(self, source: KnowledgeSource | None = None) -> None:
        self._source: KnowledgeSource = source if source is not None else settings.KNOWLEDGE_BASE_PATH
        self._snapshot: _Snapshot = _EMPTY
        self._loaded: bool = False

    # ── Loading ────────────────────────────────────────────────────────

    def load(self, source: KnowledgeSource | None = None) -> bool:
        """
        Load (or reload) the knowledge base from *source*.

        *source* may be a path to a JSON file holding a list of items, or
        an already-parsed sequence of dicts.  Any failure resets the
        store to empty / not loaded and is reported through the log;
        nothing is raised.

        Returns
        -------
        bool
            ``True`` if at least one item was loaded.
        """
        if source is not None:
            self._source = source

        try:
            raw = self._read_source(self._source)
        except FileNotFoundError:
            logger.error("[STORE] Knowledge source not found: %s", self._source)
            return self._reset()
        except json.JSONDecodeError as exc:
            logger.error("[STORE] Knowledge source is not valid JSON (%s): %s", self._source, exc)
            return self._reset()
        except (TypeError, ValueError) as exc:
            logger.error("[STORE] Knowledge source is malformed: %s", exc)
            return self._reset()
        except OSError as exc:
            logger.error("[STORE] Could not read knowledge source %s: %s", self._source, exc)
            return self._reset()

        items = self._validate_items(raw)
        if not items:
            logger.warning("[STORE] No valid knowledge items — store stays unloaded.")
            return self._reset()

        snapshot = _Snapshot(items)
        self._snapshot = snapshot
        self._loaded = True

        unscorable = sum(1 for v in snapshot.vectors if v is None)
        logger.info("[STORE] Loaded %d KB items (dim=%s, %d without embedding, %d keywords, %d intents, %d categories).", len(snapshot.items), snapshot.dimension, unscorable, len(snapshot.keyword_index), len(snapshot.intent_index), len(snapshot.category_index))
        return True


    @staticmethod
    def _validate_items(raw: list[Any]) -> list[KnowledgeItem]:
        """
        Validate every raw record on its own.

        Invalid records are skipped and logged; the rest still load.
        ``related_questions`` links are re-pointed at the surviving
        positions and links to skipped records are dropped.
        """
        valid: list[tuple[int, KnowledgeItem]] = []
        for position, record in enumerate(raw):
            try:
                valid.append((position, KnowledgeItem.model_validate(record)))
            except ValidationError as exc:
                logger.warning("[STORE] Skipping invalid item #%d: %s", position, "; ".join(err["msg"] for err in exc.errors()))

        if len(valid) == len(raw):
            return [item for _, item in valid]

        logger.warning("[STORE] %d of %d item(s) skipped as invalid.", len(raw) - len(valid), len(raw))
        new_index = {position: idx for idx, (position, _) in enumerate(valid)}
        items: list[KnowledgeItem] = []
        for _, item in valid:
            links = tuple(new_index[i] for i in item.metadata.related_questions if i in new_index)
            if links != item.metadata.related_questions:
                item = item.model_copy(update={"metadata": item.metadata.model_copy(update={"related_questions": links})})
            items.append(item)
        return items


    def reload(self) -> bool:
        """Re-run ``load()`` against the last source."""
        return self.load()


    @staticmethod
    def _read_source(source: KnowledgeSource) -> Any:
        if isinstance(source, (str, Path)):
            with open(source, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        else:
            data = list(source)
        if not isinstance(data, list):
            raise TypeError(f"Knowledge source must be a list of items, got {type(data).__name__}.")
        return data


    def _reset(self) -> bool:
        self._snapshot = _EMPTY
        self._loaded = False
        return False

    # ── Read API ───────────────────────────────────────────────────────

    @property
    def is_loaded(self) -> bool:
        """Single source of truth for whether matching is possible."""
        return self._loaded


    @property
    def dimension(self) -> int | None:
        """Shared embedding dimension, or ``None`` if empty / inconsistent."""
        return self._snapshot.dimension


    @property
    def items(self) -> tuple[KnowledgeItem, ...]:
        return self._snapshot.items


    def __len__(self) -> int:
        return len(self._snapshot.items)


    def get(self, index: int) -> KnowledgeItem:
        return self._snapshot.items[index]


    def entries(self) -> Iterator[StoreEntry]:
        """Yield ``(index, item, vector, magnitude)`` for every item."""
        snap = self._snapshot
        for idx, item in enumerate(snap.items):
            yield idx, item, snap.vectors[idx], snap.magnitudes[idx]


    def ids_for_keyword(self, keyword: str) -> frozenset[int]:
        return self._snapshot.keyword_index.get(keyword.casefold(), frozenset())


    def ids_for_intent(self, intent: str) -> frozenset[int]:
        return self._snapshot.intent_index.get(intent.casefold(), frozenset())


    def ids_for_category(self, category: str) -> frozenset[int]:
        return self._snapshot.category_index.get(category.casefold(), frozenset())


    def ids_for_sub_category(self, sub_category: str) -> frozenset[int]:
        return self._snapshot.sub_category_index.get(sub_category.casefold(), frozenset())


    def related_ids(self, index: int) -> list[int]:
        """Explicit ``related_questions`` links of item *index* that point at real items."""
        size = len(self._snapshot.items)
        links = self._snapshot.items[index].metadata.related_questions
        return [i for i in links if 0 <= i < size and i != index]


    def stats(self) -> dict[str, int | bool | None]:
        snap = self._snapshot
        return {
            "loaded": self._loaded,
            "items": len(snap.items),
            "dimension": snap.dimension,
            "keywords": len(snap.keyword_index),
            "intents": len(snap.intent_index),
            "categories": len(snap.category_index),
            "sub_categories": len(snap.sub_category_index),
        }


    def __repr__(self) -> str:
        return f"KnowledgeStore(source='{self._source}', items={len(self)}, loaded={self._loaded})"
