"""Notificador de chamados em memória (dev/testes)."""

from __future__ import annotations

from helpdesk_intake.domain.tickets import NotificationReceipt, TicketPayload
from helpdesk_intake.observability.logging import get_logger, short_id

logger = get_logger(__name__)


class InMemoryTicketNotifier:
    """Acumula payloads entregues; não faz I/O."""

    def __init__(self) -> None:
        self.sent: list[TicketPayload] = []

    async def notify(self, payload: TicketPayload) -> NotificationReceipt:
        self.sent.append(payload)
        logger.info(
            "ticket_notified",
            extra={
                "backend": "memory",
                "reference_id": payload.reference_id,
                "session_id": short_id(payload.session_id),
            },
        )
        return NotificationReceipt(delivered=True, external_id=payload.reference_id)
