"""SessionStore em Redis (staging/produção).

Expiração por inatividade fica a cargo do próprio Redis (SETEX a cada save);
`purge_expired` herda o no-op do contrato.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from helpdesk_intake.infra.session_contract import SessionStore, SessionStoreError
from helpdesk_intake.observability.logging import get_logger, short_id

if TYPE_CHECKING:
    from helpdesk_intake.application.session import SessionState

logger: logging.Logger = get_logger(__name__)

T = TypeVar("T")


class RedisSessionStore(SessionStore):
    """Sessões serializadas como JSON sob `<prefix>:<session_id>`."""

    def __init__(self, redis_client: Any, key_prefix: str = "intake_session") -> None:
        self._redis = redis_client
        self._prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}:{session_id}"

    def _call(self, operation: str, session_id: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except Exception as e:
            logger.error(
                "redis_session_op_failed",
                extra={
                    "operation": operation,
                    "session_id": short_id(session_id),
                    "error": type(e).__name__,
                },
            )
            raise SessionStoreError(f"Redis {operation} failed: {type(e).__name__}") from e

    def save(self, session: SessionState, ttl_seconds: int = 1800) -> None:
        key = self._key(session.session_id)
        body = session.model_dump_json()
        self._call("save", session.session_id, lambda: self._redis.setex(key, ttl_seconds, body))

    def load(self, session_id: str) -> SessionState | None:
        raw = self._call("load", session_id, lambda: self._redis.get(self._key(session_id)))
        if not raw:
            return None

        from helpdesk_intake.application.session import SessionState

        try:
            return SessionState.model_validate_json(raw)
        except ValidationError as e:
            logger.error("redis_session_corrupted", extra={"session_id": short_id(session_id)})
            raise SessionStoreError("Stored session payload is invalid") from e

    def delete(self, session_id: str) -> bool:
        key = self._key(session_id)
        return bool(self._call("delete", session_id, lambda: self._redis.delete(key)))

    def exists(self, session_id: str) -> bool:
        key = self._key(session_id)
        return bool(self._call("exists", session_id, lambda: self._redis.exists(key)))
