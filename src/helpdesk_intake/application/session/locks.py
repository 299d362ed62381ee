"""Serialização por sessão: um asyncio.Lock por session_id.

asyncio.Lock atende waiters em ordem FIFO, então turnos concorrentes da mesma
sessão são processados na ordem de chegada. Sessões distintas não disputam
nenhum lock.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator


class SessionLockRegistry:
    """Registro de locks por sessão com limpeza quando não há mais usuários."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._holders[session_id] = self._holders.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[session_id] -= 1
            if self._holders[session_id] == 0:
                del self._holders[session_id]
                del self._locks[session_id]

    def active_sessions(self) -> int:
        """Quantidade de sessões com turno em andamento ou na fila."""
        return len(self._locks)
