"""Chamada resiliente à capacidade semântica: timeout, um retry e validação.

- Capacidade ausente → CapabilityUnavailableError (sem retry)
- Erro/timeout → até `max_retries` novas tentativas, depois CapabilityUnavailableError
- JSON fora do contrato → MalformedCapabilityResponseError (sem retry)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from helpdesk_intake.domain.errors import (
    CapabilityUnavailableError,
    MalformedCapabilityResponseError,
)
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class CapabilityPolicy:
    """Política de chamada com defaults conservadores."""

    max_retries: int = 1
    timeout_seconds: float | None = 8.0


async def call_capability(
    operation: str,
    call: Callable[[], Awaitable[Mapping[str, Any]]] | None,
    result_model: type[ModelT],
    policy: CapabilityPolicy | None = None,
) -> ModelT:
    """Executa `call` e valida o JSON retornado contra `result_model`.

    `call` é uma fábrica sem argumentos para que cada tentativa crie uma nova
    corrotina.
    """
    if call is None:
        raise CapabilityUnavailableError(f"{operation}: capability not configured")

    policy = policy or CapabilityPolicy()
    attempts = max(policy.max_retries, 0) + 1
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        start = time.perf_counter()
        try:
            if policy.timeout_seconds:
                raw = await asyncio.wait_for(call(), timeout=policy.timeout_seconds)
            else:
                raw = await call()
        except MalformedCapabilityResponseError:
            raise
        except Exception as exc:  # noqa: BLE001
            last_error = exc
            logger.warning(
                "capability_call_failed",
                extra={
                    "operation": operation,
                    "attempt": attempt,
                    "error": type(exc).__name__,
                    "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            continue

        try:
            return result_model.model_validate(raw)
        except ValidationError as exc:
            logger.error(
                "capability_response_malformed",
                extra={"operation": operation, "error_count": exc.error_count()},
            )
            raise MalformedCapabilityResponseError(
                f"{operation}: response does not match {result_model.__name__}"
            ) from exc

    raise CapabilityUnavailableError(
        f"{operation}: failed after {attempts} attempts"
    ) from last_error
