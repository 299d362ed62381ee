"""SessionStore em memória do processo (dev/testes; proibido em staging/produção)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from helpdesk_intake.infra.session_contract import SessionStore
from helpdesk_intake.observability.logging import get_logger, short_id

if TYPE_CHECKING:
    from helpdesk_intake.application.session import SessionState

logger: logging.Logger = get_logger(__name__)


def _wall_clock() -> float:
    return datetime.now(tz=UTC).timestamp()


class InMemorySessionStore(SessionStore):
    """Dicionário session_id → (sessão, instante de expiração em epoch).

    O relógio é injetável para testar expiração sem sleep.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._sessions: dict[str, tuple[SessionState, float]] = {}
        self._clock = clock or _wall_clock

    def save(self, session: SessionState, ttl_seconds: int = 1800) -> None:
        self._sessions[session.session_id] = (session, self._clock() + ttl_seconds)
        logger.debug(
            "memory_session_saved",
            extra={"session_id": short_id(session.session_id), "ttl_seconds": ttl_seconds},
        )

    def load(self, session_id: str) -> SessionState | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None

        session, deadline = entry
        if self._clock() > deadline:
            # Expiração lazy: some no primeiro acesso após o TTL
            del self._sessions[session_id]
            logger.debug("memory_session_expired", extra={"session_id": short_id(session_id)})
            return None
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def exists(self, session_id: str) -> bool:
        return self.load(session_id) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [sid for sid, (_, deadline) in self._sessions.items() if now > deadline]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("expired_sessions_purged", extra={"count": len(expired)})
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
