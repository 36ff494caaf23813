"""
Eurotir Assist - RAG Engine
===========================
Orchestrates retrieval and answer generation for customer questions.

Architecture (OOP)
------------------
``RetrievalEngine``
    Pure, synchronous core.  Given question text and an externally
    computed query embedding it runs analyze → score → rank → assemble
    against its ``KnowledgeStore`` and returns a ``RetrievalResult``.
    No I/O, no provider calls.

``SupportAssistant``
    Async service object owning a ``RetrievalEngine``, a
    ``ResponseCache`` and a ``ConversationHistory``.  Flow:
        1. Clean question → refine with session history
        2. Cache lookup (normalised question text)
        3. Embed question          (suspension point #1)
        4. Retrieve                (synchronous)
        5. No matches → fixed "no information" reply, NOT cached
        6. Generate answer         (suspension point #2)
        7. Cache + record history → return

    Provider failures surface as ``ProviderError`` subclasses and are
    never cached.  There are no internal retries.

``create_assistant()``
    Builds the production wiring (Gemini embeddings + chat model via
    LangChain) once at process start.

Usage:
    from eurotir.src.core.rag_engine import create_assistant
    assistant = create_assistant()
    reply = await assistant.answer("How do I book a collection?")
    reply.to_payload()
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Protocol, TypeVar, runtime_checkable

from eurotir.config.prompt_templates import GENERATION_FALLBACK, NO_CONTEXT_MARKER, NO_CONTEXT_RESPONSE, SYSTEM_PROMPT, USER_PROMPT_TEMPLATE, contact_for
from eurotir.config.settings import settings
from eurotir.src.core.context_builder import ContextAssembler
from eurotir.src.core.errors import Provider, ProviderError, classify_provider_error
from eurotir.src.core.history import ConversationHistory, refine_query
from eurotir.src.core.models import AssistantReply, MatchPayload, RelatedPayload, RetrievalResult
from eurotir.src.core.query_analyzer import QueryAnalysis, QueryAnalyzer
from eurotir.src.core.response_cache import ResponseCache
from eurotir.src.core.scoring import Ranker, ScoredMatch, Scorer
from eurotir.src.database.knowledge_store import KnowledgeStore
from eurotir.src.utils.logger import get_logger
from eurotir.src.utils.text_utils import clean_text, normalize_cache_key
from eurotir.src.utils.vector_math import Vector

logger = get_logger(__name__)

T = TypeVar("T")


# ══════════════════════════════════════════════════════════════════════
#  PROVIDER PROTOCOLS
# ══════════════════════════════════════════════════════════════════════


@runtime_checkable
class Embedder(Protocol):
    """Anything that can embed a query asynchronously (LangChain ``Embeddings``)."""

    async def aembed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class ChatModel(Protocol):
    """Anything exposing LangChain's async ``ainvoke(messages)``."""

    async def ainvoke(self, input: Any, **kwargs: Any) -> Any: ...


# ══════════════════════════════════════════════════════════════════════
#  RETRIEVAL ENGINE
# ══════════════════════════════════════════════════════════════════════


class RetrievalEngine:
    """
    Parameterised retrieval core: one implementation, behaviour driven
    by configuration.

    Parameters
    ----------
    store
        Loaded (or loadable) ``KnowledgeStore``.
    analyzer, scorer, ranker, assembler
        Optional custom components; defaults read ``settings``.
    """

    __slots__ = ("_store", "_analyzer", "_scorer", "_ranker", "_assembler")

    def __init__(self, store: KnowledgeStore, analyzer: QueryAnalyzer | None = None, scorer: Scorer | None = None, ranker: Ranker | None = None, assembler: ContextAssembler | None = None) -> None:
        self._store = store
        self._analyzer = analyzer or QueryAnalyzer()
        self._scorer = scorer or Scorer()
        self._ranker = ranker or Ranker()
        self._assembler = assembler or ContextAssembler()


    @property
    def store(self) -> KnowledgeStore:
        return self._store


    @property
    def analyzer(self) -> QueryAnalyzer:
        return self._analyzer


    def find_top_matches(self, query: str, query_embedding: Vector | None, analysis: QueryAnalysis | None = None) -> list[ScoredMatch]:
        """Ranked matches above the threshold; empty when the store is not loaded."""
        if not self._store.is_loaded:
            logger.warning("[RAG] Knowledge base not loaded — no matches.")
            return []
        analysis = analysis or self._analyzer.analyze(query)
        candidates = self._scorer.score_all(self._store, analysis, query_embedding)
        return self._ranker.rank(candidates, analysis.is_procedural)


    def retrieve(self, query: str, query_embedding: Vector | None) -> RetrievalResult:
        """Full retrieval for one question, shaped as the engine output contract."""
        t_start = time.perf_counter()
        analysis = self._analyzer.analyze(query)
        matches = self.find_top_matches(query, query_embedding, analysis)
        context = self._assembler.assemble(matches, analysis, self._store)

        result = RetrievalResult(
            matches=tuple(MatchPayload.from_match(m) for m in matches),
            context_text=context.text,
            related_content=tuple(RelatedPayload.from_item(item) for item in context.related),
            detected_intent=analysis.intent,
            is_procedural=analysis.is_procedural,
            department=analysis.department,
            context_used=bool(matches),
        )

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        top = f"{matches[0].final_score:.3f}" if matches else "n/a"
        logger.info("[RAG] Retrieval: %d match(es), top=%s, intent=%s, procedural=%s in %.1fms", len(matches), top, analysis.intent, analysis.is_procedural, elapsed_ms)
        return result


# ══════════════════════════════════════════════════════════════════════
#  SUPPORT ASSISTANT
# ══════════════════════════════════════════════════════════════════════


class SupportAssistant:
    """
    End-to-end question answering service.

    Parameters
    ----------
    engine
        The ``RetrievalEngine`` (owns the knowledge store).
    embedder
        ``Embedder``-compatible query embedding provider.
    chat_model
        ``ChatModel``-compatible generation provider.
    cache
        Optional custom ``ResponseCache``.
    history
        Optional custom ``ConversationHistory``.
    timeout
        Default deadline (seconds) applied to each provider call.
    """

    __slots__ = ("_engine", "_embedder", "_llm", "_cache", "_history", "_timeout")

    def __init__(self, engine: RetrievalEngine, embedder: Embedder, chat_model: ChatModel, cache: ResponseCache[AssistantReply] | None = None, history: ConversationHistory | None = None, timeout: float | None = None) -> None:
        self._engine = engine
        self._embedder = embedder
        self._llm = chat_model
        self._cache: ResponseCache[AssistantReply] = cache if cache is not None else ResponseCache()
        self._history = history if history is not None else ConversationHistory()
        self._timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SECONDS


    @property
    def engine(self) -> RetrievalEngine:
        return self._engine


    @property
    def cache(self) -> ResponseCache[AssistantReply]:
        return self._cache


    @property
    def history(self) -> ConversationHistory:
        return self._history

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start background housekeeping (cache sweeper)."""
        self._cache.start()


    async def aclose(self) -> None:
        await self._cache.stop()

    # ── Pipeline ───────────────────────────────────────────────────────

    async def answer(self, question: str, session_id: str | None = None, timeout: float | None = None) -> AssistantReply:
        """
        Answer *question*.

        Raises
        ------
        ValueError
            If the question is empty after cleaning.
        ProviderError
            ``QuotaExhaustedError`` / ``RateLimitedError`` /
            ``ProviderUnavailableError`` when an upstream call fails.
        """
        t_start = time.perf_counter()
        deadline = timeout if timeout is not None else self._timeout

        cleaned = clean_text(question)
        if not cleaned:
            raise ValueError("Question must not be empty.")

        history = self._history.get_history(session_id) if session_id else []
        query = refine_query(cleaned, history)
        if query != cleaned:
            logger.info("[RAG] Follow-up refined: '%s' → '%s'", cleaned[:50], query[:80])

        # ── Cache ──────────────────────────────────────────────────────
        cache_key = normalize_cache_key(query)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.info("[RAG] Cache hit (%.1fms).", (time.perf_counter() - t_start) * 1000)
            self._remember(session_id, cleaned, cached.answer)
            return cached

        # ── Embed ──────────────────────────────────────────────────────
        t_embed = time.perf_counter()
        query_embedding = await self._call("embedding", self._embedder.aembed_query(query), deadline)
        embed_ms = (time.perf_counter() - t_embed) * 1000

        # ── Retrieve ───────────────────────────────────────────────────
        retrieval = self._engine.retrieve(query, query_embedding)

        if not retrieval.context_used:
            logger.warning("[RAG] No relevant knowledge-base entries for this question.")
            reply = AssistantReply(answer=NO_CONTEXT_RESPONSE.format(contact=contact_for(retrieval.department)), retrieval=retrieval)
            self._remember(session_id, cleaned, reply.answer)
            return reply

        # ── Generate ───────────────────────────────────────────────────
        t_llm = time.perf_counter()
        answer = await self._generate(cleaned, retrieval, deadline)
        llm_ms = (time.perf_counter() - t_llm) * 1000

        reply = AssistantReply(answer=answer, retrieval=retrieval)
        self._cache.set(cache_key, reply)
        self._remember(session_id, cleaned, answer)

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RAG] Pipeline total: %.1fms (embed=%.1f, llm=%.1f)", total_ms, embed_ms, llm_ms)
        return reply


    async def _generate(self, question: str, retrieval: RetrievalResult, deadline: float | None) -> str:
        from langchain_core.messages import HumanMessage, SystemMessage

        prompt = USER_PROMPT_TEMPLATE.format(context=retrieval.context_text or NO_CONTEXT_MARKER, question=question, contact=contact_for(retrieval.department))
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]

        response = await self._call("generation", self._llm.ainvoke(messages), deadline)
        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(part if isinstance(part, str) else str(part.get("text", "")) for part in content)
        text = str(content).strip() if content is not None else ""
        return text or GENERATION_FALLBACK


    @staticmethod
    async def _call(provider: Provider, call: Awaitable[T], deadline: float | None) -> T:
        """Await a provider call under an optional deadline, translating failures."""
        try:
            if deadline is None:
                return await call
            return await asyncio.wait_for(call, timeout=deadline)
        except ProviderError:
            raise
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify_provider_error(exc, provider)
            logger.error("[RAG] %s call failed (%s): %s", provider, error.kind, exc)
            raise error from exc


    def _remember(self, session_id: str | None, question: str, answer: str) -> None:
        if not session_id:
            return
        self._history.add_message(session_id, "user", question)
        self._history.add_message(session_id, "assistant", answer)


# ══════════════════════════════════════════════════════════════════════
#  FACTORY
# ══════════════════════════════════════════════════════════════════════


def create_embedder() -> Embedder:
    """Gemini embeddings via LangChain, configured from ``settings``."""
    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("Embedder initialised: %s", settings.EMBEDDING_MODEL)
    return embedder


def create_chat_model() -> ChatModel:
    """Gemini chat model via LangChain, configured from ``settings``."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, max_output_tokens=settings.LLM_MAX_OUTPUT_TOKENS, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("LLM initialised: %s (temperature=%.2f, max_tokens=%d)", settings.LLM_MODEL, settings.LLM_TEMPERATURE, settings.LLM_MAX_OUTPUT_TOKENS)
    return llm


def create_assistant(store: KnowledgeStore | None = None, embedder: Embedder | None = None, chat_model: ChatModel | None = None) -> SupportAssistant:
    """
    Build the process-wide ``SupportAssistant``.

    Loads the knowledge base if the given (or default) store is not
    loaded yet.  A failed load is logged and leaves the assistant
    answering "no information" for every question.
    """
    store = store if store is not None else KnowledgeStore()
    if not store.is_loaded:
        store.load()
    engine = RetrievalEngine(store)
    return SupportAssistant(engine, embedder or create_embedder(), chat_model or create_chat_model())
