"""Notificador de chamados via webhook HTTP (httpx).

- Sempre com timeout
- Nunca loga o payload (contém PII do solicitante)
"""

from __future__ import annotations

import logging

import httpx

from helpdesk_intake.domain.errors import TicketSubmissionError
from helpdesk_intake.domain.tickets import NotificationReceipt, TicketPayload
from helpdesk_intake.observability.logging import get_logger, short_id

logger: logging.Logger = get_logger(__name__)


class WebhookTicketNotifier:
    """POST do TicketPayload em JSON para uma URL configurada."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._client = client
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    async def notify(self, payload: TicketPayload) -> NotificationReceipt:
        body = payload.model_dump_json()
        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "ticket_webhook_rejected",
                extra={
                    "status_code": e.response.status_code,
                    "session_id": short_id(payload.session_id),
                },
            )
            raise TicketSubmissionError(f"Webhook returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning(
                "ticket_webhook_failed",
                extra={"error": type(e).__name__, "session_id": short_id(payload.session_id)},
            )
            raise TicketSubmissionError(f"Webhook failed: {type(e).__name__}") from e

        external_id = None
        if response.headers.get("content-type", "").startswith("application/json"):
            data = response.json()
            if isinstance(data, dict):
                external_id = data.get("id")

        logger.info(
            "ticket_notified",
            extra={
                "backend": "webhook",
                "reference_id": payload.reference_id,
                "status_code": response.status_code,
            },
        )
        return NotificationReceipt(delivered=True, external_id=external_id)

    async def _post(self, client: httpx.AsyncClient, body: str) -> httpx.Response:
        return await client.post(
            self._url, content=body, headers=self._headers, timeout=self._timeout
        )
