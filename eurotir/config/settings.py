"""
Eurotir Assist - Centralized Configuration
==========================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.

Clamping
--------
Every tunable number of the retrieval engine is *clamped* into a safe
range rather than rejected, so a typo in an environment variable can
degrade ranking quality but never take the service down.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).  **Required.**
        Access the raw value with ``settings.GOOGLE_API_KEY.get_secret_value()``.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
        Opaque to the engine; it must match the model used to build
        the knowledge-base embeddings.
    LLM_MODEL : str
        Model identifier for the response-generation LLM.
    SIMILARITY_THRESHOLD : float
        Minimum final score a match must *exceed* to reach the context.
    MAX_CONTEXT_ITEMS : int
        Top-K window applied before the threshold filter.
    CACHE_TTL_SECONDS : int
        Lifetime of a cached answer.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    KNOWLEDGE_SOURCE_PATH: Path = BASE_DIR / "data" / "knowledge_base.json"
    KNOWLEDGE_BASE_PATH: Path = BASE_DIR / "data" / "knowledge_embeddings.json"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: str | None = None

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.12
    LLM_MAX_OUTPUT_TOKENS: int = 800
    PROVIDER_TIMEOUT_SECONDS: float | None = None

    # ── Retrieval ──────────────────────────────────────────────────────
    SIMILARITY_THRESHOLD: float = 0.4
    MAX_CONTEXT_ITEMS: int = 6
    CONTEXT_CHAR_BUDGET: int = 2000
    PROCEDURAL_TIEBREAK_FIRST: bool = True

    # ── Boost Weights ──────────────────────────────────────────────────
    KEYWORD_BOOST: float = 0.1
    INTENT_BOOST: float = 0.2
    CATEGORY_BOOST: float = 0.1
    PROCEDURAL_BOOST: float = 0.15
    PRIORITY_BOOST_HIGH: float = 0.1
    PRIORITY_BOOST_MEDIUM: float = 0.05
    PRIORITY_BOOST_LOW: float = 0.0
    BOOST_TOTAL_CAP: float | None = None

    # ── Response Cache ─────────────────────────────────────────────────
    CACHE_TTL_SECONDS: int = 300
    CACHE_SWEEP_INTERVAL_SECONDS: int = 60

    # ── Conversation Memory ────────────────────────────────────────────
    HISTORY_TURNS: int = 6
    HISTORY_MAX_SESSIONS: int = 1000

    # ── Validators (clamp, never reject) ───────────────────────────────

    @field_validator("SIMILARITY_THRESHOLD")
    @classmethod
    def _threshold_range(cls, v: float) -> float:
        return _clamp(v, 0.1, 1.0)


    @field_validator("MAX_CONTEXT_ITEMS")
    @classmethod
    def _max_items_range(cls, v: int) -> int:
        return int(_clamp(v, 1, 20))


    @field_validator("CONTEXT_CHAR_BUDGET")
    @classmethod
    def _budget_range(cls, v: int) -> int:
        return int(_clamp(v, 200, 20000))


    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        return _clamp(v, 0.0, 2.0)


    @field_validator("LLM_MAX_OUTPUT_TOKENS")
    @classmethod
    def _max_tokens_range(cls, v: int) -> int:
        return int(_clamp(v, 64, 8192))


    @field_validator("PROVIDER_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_range(cls, v: float | None) -> float | None:
        return None if v is None else _clamp(v, 1.0, 120.0)


    @field_validator("KEYWORD_BOOST", "PRIORITY_BOOST_HIGH", "PRIORITY_BOOST_MEDIUM", "PRIORITY_BOOST_LOW")
    @classmethod
    def _small_boost_range(cls, v: float) -> float:
        return _clamp(v, 0.0, 0.3)


    @field_validator("INTENT_BOOST", "CATEGORY_BOOST", "PROCEDURAL_BOOST")
    @classmethod
    def _boost_range(cls, v: float) -> float:
        return _clamp(v, 0.0, 0.5)


    @field_validator("BOOST_TOTAL_CAP")
    @classmethod
    def _total_cap_range(cls, v: float | None) -> float | None:
        return None if v is None else _clamp(v, 0.0, 1.0)


    @field_validator("CACHE_TTL_SECONDS")
    @classmethod
    def _ttl_range(cls, v: int) -> int:
        return int(_clamp(v, 1, 86400))


    @field_validator("CACHE_SWEEP_INTERVAL_SECONDS")
    @classmethod
    def _sweep_range(cls, v: int) -> int:
        return int(_clamp(v, 1, 3600))


    @field_validator("HISTORY_TURNS")
    @classmethod
    def _history_range(cls, v: int) -> int:
        return int(_clamp(v, 0, 50))


    @field_validator("HISTORY_MAX_SESSIONS")
    @classmethod
    def _sessions_range(cls, v: int) -> int:
        return int(_clamp(v, 1, 100000))

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from eurotir.config.settings import settings
settings = Settings()
