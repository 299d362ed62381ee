"""SessionManager: ciclo de vida de sessão (create, load, persist, delete).

Centraliza o acesso ao SessionStore para que o orquestrador nunca fale
diretamente com o backend de persistência.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from helpdesk_intake.application.session.locks import SessionLockRegistry
from helpdesk_intake.application.session.models import SessionState, UserContext
from helpdesk_intake.config.settings import Settings, get_settings
from helpdesk_intake.domain.errors import SessionNotFoundError
from helpdesk_intake.observability.logging import get_logger, short_id
from helpdesk_intake.utils.ids import new_session_id

if TYPE_CHECKING:
    from helpdesk_intake.infra.session_contract import SessionStore


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class SessionManager:
    """Gerencia ciclo de vida de sessão sobre um SessionStore."""

    def __init__(
        self,
        session_store: SessionStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        locks: SessionLockRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sessions = session_store
        self._settings = settings or get_settings()
        self._clock = clock or _utcnow
        self._locks = locks or SessionLockRegistry()
        self._logger = logger or get_logger(__name__)

    @property
    def ttl_seconds(self) -> int:
        return self._settings.session_ttl_seconds

    def now(self) -> datetime:
        return self._clock()

    def create(self, user_context: UserContext | None = None) -> SessionState:
        """Cria e persiste uma sessão nova em INIT."""
        now = self._clock()
        session = SessionState(
            session_id=new_session_id(),
            user_context=user_context or UserContext(),
            created_at=now,
            updated_at=now,
        )
        self.persist(session)
        self._logger.info("session_created", extra={"session_id": short_id(session.session_id)})
        return session

    def load(self, session_id: str) -> SessionState:
        """Carrega sessão existente.

        Raises:
            SessionNotFoundError: sessão inexistente ou expirada
        """
        session = self._sessions.load(session_id)
        if session is None:
            self._logger.info("session_not_found", extra={"session_id": short_id(session_id)})
            raise SessionNotFoundError(session_id)
        return session

    def persist(self, session: SessionState) -> None:
        """Atualiza updated_at/expires_at e grava com o TTL de inatividade."""
        now = self._clock()
        session.updated_at = now
        session.expires_at = now + timedelta(seconds=self.ttl_seconds)
        self._sessions.save(session, ttl_seconds=self.ttl_seconds)

    def delete(self, session_id: str) -> bool:
        deleted = self._sessions.delete(session_id)
        self._logger.info(
            "session_ended", extra={"session_id": short_id(session_id), "existed": deleted}
        )
        return deleted

    @contextlib.asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """Serializa turnos da mesma sessão."""
        async with self._locks.hold(session_id):
            yield
