"""
ask.py — Retrieval Verification

Loads the knowledge base, runs one question through the assistant and
prints the ranked matches with their score breakdown, the assembled
context and (unless ``--retrieval-only``) the generated answer.

Run:
    python -m eurotir.scripts.ask "How do I book a collection?"
    python -m eurotir.scripts.ask "Do you deliver to Spain?" --retrieval-only
"""

from __future__ import annotations

import argparse
import asyncio

from eurotir.src.core.errors import ProviderError
from eurotir.src.core.models import RetrievalResult
from eurotir.src.core.rag_engine import RetrievalEngine, create_assistant, create_embedder
from eurotir.src.database.knowledge_store import KnowledgeStore
from eurotir.src.utils.logger import set_level


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ask", description="Ask the knowledge base a question.")
    parser.add_argument("question", help="Customer question.")
    parser.add_argument("--retrieval-only", action="store_true", default=False, help="Skip the generation call.")
    parser.add_argument("--verbose", action="store_true", default=False, help="Log at DEBUG level (boost and ranking details).")
    return parser.parse_args()


def _print_retrieval(result: RetrievalResult) -> None:
    print(f"Intent: {result.detected_intent}  |  Procedural: {result.is_procedural}  |  Department: {result.department}")
    print("=" * 60)
    if not result.matches:
        print("No matches above threshold.")
    for i, match in enumerate(result.matches, 1):
        b = match.boosts
        print(f"\n--- Match {i} ---")
        print(f"  Score:     {match.score:.4f}  (base {match.base_score:.4f} + boosts {b.total:.2f})")
        print(f"  Boosts:    keyword={b.keyword:.2f} intent={b.intent:.2f} category={b.category:.2f} procedural={b.procedural:.2f} priority={b.priority:.2f}")
        print(f"  Category:  {match.category} / {match.sub_category}")
        print(f"  Q: {match.question}")
        print(f"  A: {match.answer}")

    print("\n" + "=" * 60)
    print("CONTEXT:")
    print(result.context_text or "(empty)")


async def _run(args: argparse.Namespace) -> None:
    set_level("DEBUG" if args.verbose else "WARNING")
    store = KnowledgeStore()
    if not store.load():
        print("Knowledge base could not be loaded. Run 'python -m eurotir.scripts.build_embeddings' first.")
        return
    print(f"Knowledge base: {store.stats()}\n")
    print(f"Question: {args.question}")

    try:
        if args.retrieval_only:
            embedder = create_embedder()
            embedding = await embedder.aembed_query(args.question)
            _print_retrieval(RetrievalEngine(store).retrieve(args.question, embedding))
            return

        assistant = create_assistant(store)
        reply = await assistant.answer(args.question)
    except ProviderError as exc:
        print(f"\nProvider failure ({exc.kind}): {exc}")
        return

    _print_retrieval(reply.retrieval)
    print("\n" + "=" * 60)
    print("ANSWER:")
    print(reply.answer)


def main() -> None:
    asyncio.run(_run(_parse_args()))


if __name__ == "__main__":
    main()
