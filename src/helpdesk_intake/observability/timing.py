"""Latência por etapa do turno (classificação, extração, turno completo)."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Iterator

from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)


@contextlib.contextmanager
def timed(component: str) -> Iterator[None]:
    """Emite `component_latency` (DEBUG) ao sair do bloco, com ou sem exceção."""
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(
            "component_latency",
            extra={
                "component": component,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
