"""Logging estruturado (JSON) do motor de intake.

Todo record recebe `correlation_id` (um por turno) e `service`. Campos extras
com texto do usuário ou valores de intake são descartados antes da
serialização.
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from helpdesk_intake.observability.correlation import get_correlation_id

# Chaves de `extra` que nunca podem chegar ao log
UNSAFE_EXTRA_KEYS = frozenset({
    "text",
    "user_message",
    "message_text",
    "intake",
    "transcript",
    "error_text",
    "problem",
})

# Bibliotecas de I/O que logam URLs e headers em DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class CorrelationIdFilter(logging.Filter):
    """Carimba correlation_id/service e remove extras proibidos."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        record.service = self._service_name
        for key in UNSAFE_EXTRA_KEYS & record.__dict__.keys():
            delattr(record, key)
        return True


def configure_logging(level: str, service_name: str) -> None:
    """Instala o handler JSON no root logger (idempotente)."""
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s",
            rename_fields={"levelname": "level", "name": "logger", "message": "event"},
        )
    )
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def short_id(session_id: str | None) -> str | None:
    """Primeiros 8 caracteres do session_id, para correlacionar sem expor o id."""
    if not session_id:
        return None
    return f"{session_id[:8]}..."


def log_fallback(
    logger: logging.Logger,
    component: str,
    reason: str | None = None,
    elapsed_ms: float | None = None,
) -> None:
    """Registra (INFO) que um componente caiu para a regra determinística.

    `reason` é um nome de exceção ou código curto; nunca texto do usuário.
    """
    extra: dict[str, object] = {"fallback_used": True, "component": component}
    if reason:
        extra["reason"] = reason
    if elapsed_ms is not None:
        extra["elapsed_ms"] = round(elapsed_ms, 2)
    logger.info(f"Fallback applied for {component}", extra=extra)
