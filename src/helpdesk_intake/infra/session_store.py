"""Factory de SessionStore conforme SESSION_STORE_BACKEND."""

from __future__ import annotations

from typing import Any

from helpdesk_intake.config.settings import Settings
from helpdesk_intake.infra.session_contract import SessionStore
from helpdesk_intake.infra.session_store_memory import InMemorySessionStore
from helpdesk_intake.infra.session_store_redis import RedisSessionStore
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)


def create_session_store(settings: Settings, redis_client: Any | None = None) -> SessionStore:
    """Cria o SessionStore configurado.

    Raises:
        ValueError: backend inválido ou configuração incompleta
    """
    backend = settings.session_store_backend.lower()

    if backend == "memory":
        if settings.is_staging or settings.is_production:
            raise ValueError("SESSION_STORE_BACKEND=memory não é permitido em staging/production")
        logger.info("session_store_selected", extra={"backend": "memory"})
        return InMemorySessionStore()

    if backend == "redis":
        if redis_client is None:
            if not settings.redis_url:
                raise ValueError("SESSION_STORE_BACKEND=redis requer REDIS_URL")
            import redis

            redis_client = redis.Redis.from_url(settings.redis_url)
        logger.info("session_store_selected", extra={"backend": "redis"})
        return RedisSessionStore(redis_client)

    raise ValueError(f"SESSION_STORE_BACKEND inválido: {backend}")
