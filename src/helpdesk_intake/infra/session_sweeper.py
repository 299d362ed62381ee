"""Varredura periódica de sessões expiradas.

Backends com TTL nativo (Redis) retornam 0 em `purge_expired`; o sweeper é
relevante para o store em memória.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from helpdesk_intake.infra.session_contract import SessionStore, SessionStoreError
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)


class SessionSweeper:
    """Executa `purge_expired` a cada `interval_seconds`."""

    def __init__(
        self,
        store: SessionStore,
        interval_seconds: float = 300,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._sleep = sleep

    def sweep_once(self) -> int:
        try:
            purged = self._store.purge_expired()
        except SessionStoreError as e:
            logger.error("session_sweep_failed", extra={"error": type(e).__name__})
            return 0
        logger.debug("session_sweep_done", extra={"purged": purged})
        return purged

    async def run(
        self, stop_event: asyncio.Event | None = None, max_iterations: int | None = None
    ) -> int:
        """Loop de varredura; retorna o total de sessões removidas."""
        total = 0
        iterations = 0
        while stop_event is None or not stop_event.is_set():
            if max_iterations is not None and iterations >= max_iterations:
                break
            await self._sleep(self._interval)
            total += self.sweep_once()
            iterations += 1
        return total
