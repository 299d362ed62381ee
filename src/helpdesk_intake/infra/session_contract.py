"""Contrato de persistência de sessão compartilhado pelos backends (memória, Redis)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from helpdesk_intake.application.session import SessionState


class SessionStoreError(Exception):
    """Backend indisponível ou payload de sessão corrompido."""


class SessionStore(ABC):
    """Armazena SessionState por session_id com TTL de inatividade.

    A expiração é verificada no acesso: uma sessão vencida se comporta como
    inexistente. Sessões nunca compartilham estado entre si.
    """

    @abstractmethod
    def save(self, session: SessionState, ttl_seconds: int = 1800) -> None:
        """Persiste a sessão com TTL.

        Raises:
            SessionStoreError: Em caso de falha de persistência
        """
        ...

    @abstractmethod
    def load(self, session_id: str) -> SessionState | None:
        """Carrega sessão por ID; None se ausente ou expirada."""
        ...

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Remove sessão; True se existia."""
        ...

    @abstractmethod
    def exists(self, session_id: str) -> bool:
        """Verifica se sessão existe e não expirou."""
        ...

    def purge_expired(self) -> int:
        """Remove sessões expiradas; backends com TTL nativo retornam 0."""
        return 0
