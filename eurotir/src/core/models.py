"""
Eurotir Assist - Result Models
==============================
Pydantic models describing what the engine hands to its callers.

Field names are snake_case in Python and serialise to camelCase via
``to_payload()`` — the JSON shape the HTTP layer returns:

    {
        "matches": [{"score", "baseScore", "boosts", "question", "answer",
                     "category", "subCategory", "metadata"}],
        "contextText", "relatedContent", "detectedIntent",
        "isProcedural", "department", "contextUsed"
    }
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from eurotir.src.core.scoring import ScoredMatch
from eurotir.src.database.knowledge_store import KnowledgeItem


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class BoostPayload(_Payload):
    keyword: float = 0.0
    intent: float = 0.0
    category: float = 0.0
    procedural: float = 0.0
    priority: float = 0.0
    total: float = 0.0


class MatchPayload(_Payload):
    score: float
    base_score: float
    boosts: BoostPayload
    question: str
    answer: str
    category: str
    sub_category: str
    metadata: dict[str, Any]

    @classmethod
    def from_match(cls, match: ScoredMatch) -> MatchPayload:
        item = match.item
        return cls(score=match.final_score, base_score=match.base_score, boosts=BoostPayload(**match.boosts.as_dict()), question=item.question, answer=item.answer, category=item.category, sub_category=item.sub_category, metadata=item.metadata.model_dump(mode="json"))


class RelatedPayload(_Payload):
    question: str
    answer: str
    category: str
    sub_category: str

    @classmethod
    def from_item(cls, item: KnowledgeItem) -> RelatedPayload:
        return cls(question=item.question, answer=item.answer, category=item.category, sub_category=item.sub_category)


class RetrievalResult(_Payload):
    """Everything retrieval produced for one question."""

    matches: tuple[MatchPayload, ...] = ()
    context_text: str = ""
    related_content: tuple[RelatedPayload, ...] = ()
    detected_intent: str | None = None
    is_procedural: bool = False
    department: str | None = None
    context_used: bool = False


class AssistantReply(_Payload):
    """Answer plus the retrieval it was grounded on."""

    answer: str
    retrieval: RetrievalResult

    def to_payload(self) -> dict[str, Any]:
        payload = self.retrieval.to_payload()
        payload["answer"] = self.answer
        return payload
