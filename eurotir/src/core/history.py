"""
Eurotir Assist - Conversation History
=====================================
Per-session, in-process record of recent turns.  Nothing is persisted:
history lives as long as the process.  The number of sessions is capped;
once full, the least recently used session is dropped.

History is only an optional *input* to retrieval: short follow-up
questions ("and to France?") borrow the previous user question so the
embedding and the keyword signals have something to work with.
"""

from __future__ import annotations

from collections import OrderedDict, deque

from eurotir.config.settings import settings
from eurotir.src.utils.logger import get_logger
from eurotir.src.utils.text_utils import tokenize

logger = get_logger(__name__)

ChatMessage = dict[str, str]

# Below this many meaningful tokens a question is treated as a follow-up
_FOLLOW_UP_TOKENS = 4


class ConversationHistory:
    """
    Bounded message log keyed by ``session_id``.

    Parameters
    ----------
    max_turns
        Messages kept per session (user and assistant messages both
        count).  Defaults to ``settings.HISTORY_TURNS``.
    max_sessions
        Sessions kept at once, least recently used evicted first.
        Defaults to ``settings.HISTORY_MAX_SESSIONS``.
    """

    __slots__ = ("_max_turns", "_max_sessions", "_sessions")

    def __init__(self, max_turns: int | None = None, max_sessions: int | None = None) -> None:
        self._max_turns = max_turns if max_turns is not None else settings.HISTORY_TURNS
        self._max_sessions = max(1, max_sessions if max_sessions is not None else settings.HISTORY_MAX_SESSIONS)
        self._sessions: OrderedDict[str, deque[ChatMessage]] = OrderedDict()


    def add_message(self, session_id: str, role: str, content: str) -> None:
        if self._max_turns <= 0:
            return
        log = self._sessions.get(session_id)
        if log is None:
            log = self._sessions[session_id] = deque(maxlen=self._max_turns)
        else:
            self._sessions.move_to_end(session_id)
        log.append({"role": role, "content": content})

        while len(self._sessions) > self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("[HISTORY] Session cap %d reached — dropped '%s'.", self._max_sessions, evicted)


    def get_history(self, session_id: str) -> list[ChatMessage]:
        log = self._sessions.get(session_id)
        if log is None:
            return []
        self._sessions.move_to_end(session_id)
        return list(log)


    def clear_session(self, session_id: str) -> bool:
        """Delete a session entirely.  Returns True if removed."""
        return self._sessions.pop(session_id, None) is not None


    def __len__(self) -> int:
        return len(self._sessions)


    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


def refine_query(query: str, history: list[ChatMessage]) -> str:
    """
    Expand a short follow-up question with the previous user question.

    Returns *query* unchanged when it already carries enough tokens or
    there is no earlier user turn.
    """
    if len(tokenize(query)) >= _FOLLOW_UP_TOKENS or not history:
        return query

    previous = [m["content"] for m in history if m.get("role") == "user"]
    if not previous:
        return query
    return f"{previous[-1]} {query}"
