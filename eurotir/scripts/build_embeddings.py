"""
Eurotir Assist - Knowledge Base Embedding Builder
=================================================
CLI entry point that orchestrates:
    1. Validate settings (``GOOGLE_API_KEY`` must be set — fail-fast).
    2. Read the raw knowledge base (Q/A items without embeddings).
    3. Embed ``Q + A`` text for every item, in batches.
    4. Write the embeddings file the ``KnowledgeStore`` loads at startup.
    5. Print a structured execution summary with timing breakdown.

Items that already carry an embedding are kept as-is unless
``--force`` is given.

Usage:
    python -m eurotir.scripts.build_embeddings
    python -m eurotir.scripts.build_embeddings --source kb.json --output kb_emb.json
    python -m eurotir.scripts.build_embeddings --force --batch-size 32
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any

_EMBED_BATCH_SIZE = 64


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="build_embeddings", description="Eurotir Assist — embed the raw knowledge base for retrieval.")
    parser.add_argument("--source", type=Path, default=None, help="Raw knowledge base JSON (default: settings.KNOWLEDGE_SOURCE_PATH).")
    parser.add_argument("--output", type=Path, default=None, help="Embeddings JSON to write (default: settings.KNOWLEDGE_BASE_PATH).")
    parser.add_argument("--batch-size", type=int, default=_EMBED_BATCH_SIZE, help=f"Texts per embedding request (default {_EMBED_BATCH_SIZE}).")
    parser.add_argument("--force", action="store_true", default=False, help="Re-embed items that already have an embedding.")
    return parser.parse_args(argv)


# ── Embedding helpers ──────────────────────────────────────────────────

def item_text(item: dict[str, Any]) -> str:
    """Text embedded for an item: question and answer, either field-name variant."""
    question = item.get("Q") or item.get("question") or ""
    answer = item.get("A") or item.get("answer") or item.get("text") or ""
    return f"Q: {question}\nA: {answer}".strip()


def embed_items(items: list[dict[str, Any]], embedder: Any, batch_size: int = _EMBED_BATCH_SIZE, force: bool = False, logger: Any = None) -> int:
    """
    Attach an ``embedding`` to every item that needs one.

    Embedding is done in batches of *batch_size* to keep request sizes
    and peak memory bounded.  Returns the number of items embedded.
    """
    pending = [i for i, item in enumerate(items) if force or not item.get("embedding")]
    for start in range(0, len(pending), batch_size):
        batch = pending[start : start + batch_size]
        try:
            vectors = embedder.embed_documents([item_text(items[i]) for i in batch])
        except Exception as exc:
            if logger is not None:
                logger.error("Embedding batch %d–%d failed: %s", start, start + len(batch) - 1, exc)
            raise
        for i, vector in zip(batch, vectors):
            items[i]["embedding"] = [float(x) for x in vector]
        if logger is not None:
            logger.info("Embedded %d/%d item(s).", min(start + batch_size, len(pending)), len(pending))
    return len(pending)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env ────────────────────────────────────────
    try:
        from eurotir.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    # Settings are loaded, so the logger can be imported safely
    from eurotir.src.utils.logger import get_logger
    logger = get_logger(__name__)

    source: Path = args.source or settings.KNOWLEDGE_SOURCE_PATH
    output: Path = args.output or settings.KNOWLEDGE_BASE_PATH
    batch_size = max(1, args.batch_size)

    # ── 1. Read raw knowledge base ─────────────────────────────────────
    try:
        items = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.error("Knowledge source not found: %s", source)
        sys.exit(1)
    except json.JSONDecodeError as exc:
        logger.error("Knowledge source is not valid JSON: %s", exc)
        sys.exit(1)
    if not isinstance(items, list):
        logger.error("Knowledge source must be a JSON list, got %s.", type(items).__name__)
        sys.exit(1)
    logger.info("Read %d item(s) from %s", len(items), source)

    # ── 2. Initialise embedder (timed) ─────────────────────────────────
    t_embedder = time.perf_counter()
    try:
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    except ImportError:
        logger.error("langchain-google-genai is not installed.")
        sys.exit(1)
    embedder_ms = (time.perf_counter() - t_embedder) * 1000
    logger.info("Embedder %s initialised in %.1fms", settings.EMBEDDING_MODEL, embedder_ms)

    # ── 3. Embed ───────────────────────────────────────────────────────
    t_embed = time.perf_counter()
    try:
        embedded = embed_items(items, embedder, batch_size=batch_size, force=args.force, logger=logger)
    except Exception:
        logger.exception("Embedding failed — nothing written.")
        sys.exit(1)
    embed_s = time.perf_counter() - t_embed

    # ── 4. Write output ────────────────────────────────────────────────
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
    logger.info("Wrote %s", output)

    _print_summary(source, output, len(items), embedded, embedder_ms, embed_s, time.perf_counter() - t_start)


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_summary(source: Path, output: Path, total: int, embedded: int, embedder_ms: float, embed_s: float, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Source               : {source}")
    print(f"  Output               : {output}")
    print(f"  Items total          : {total}")
    print(f"  Items embedded       : {embedded}")
    print(f"  Items kept as-is     : {total - embedded}")
    print("-" * 60)
    print(f"  Embedder init        : {embedder_ms:>8.1f}ms")
    print(f"  Embedding time       : {embed_s:>8.2f}s")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


if __name__ == "__main__":
    main()
