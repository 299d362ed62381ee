"""Erros de domínio do motor de intake."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Tipos de erro observáveis (logs e respostas)."""

    INVALID_INPUT = "InvalidInput"
    CAPABILITY_UNAVAILABLE = "CapabilityUnavailable"
    MALFORMED_CAPABILITY_RESPONSE = "MalformedCapabilityResponse"
    SESSION_NOT_FOUND = "SessionNotFound"
    SUBMISSION_BLOCKED = "SubmissionBlocked"
    PERSISTENCE_FAILURE = "PersistenceFailure"


class IntakeError(Exception):
    """Erro base do pacote."""

    kind: ErrorKind | None = None


class InvalidInputError(IntakeError):
    """Mensagem vazia ou não-string; rejeitada antes de qualquer mutação."""

    kind = ErrorKind.INVALID_INPUT


class CapabilityUnavailableError(IntakeError):
    """Capacidade semântica ausente, com erro ou timeout."""

    kind = ErrorKind.CAPABILITY_UNAVAILABLE


class MalformedCapabilityResponseError(IntakeError):
    """JSON da capacidade não passou na validação de schema."""

    kind = ErrorKind.MALFORMED_CAPABILITY_RESPONSE


class SessionNotFoundError(IntakeError):
    """Sessão inexistente ou expirada."""

    kind = ErrorKind.SESSION_NOT_FOUND

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id[:8]}... not found")
        self.session_id = session_id


class PersistenceFailureError(IntakeError):
    """Falha ao gravar metadados do chamado após notificação bem-sucedida."""

    kind = ErrorKind.PERSISTENCE_FAILURE


class TicketSubmissionError(IntakeError):
    """Colaborador de notificação falhou; chamado não foi criado."""
