"""Protocolos dos colaboradores de chamado (notificação e registro)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from helpdesk_intake.domain.tickets import NotificationReceipt, TicketPayload, TicketRecord


class TicketNotifier(Protocol):
    """Entrega o chamado (e-mail, webhook...).

    Deve lançar exceção se o chamado não puder ser criado.
    """

    async def notify(self, payload: TicketPayload) -> NotificationReceipt: ...


class TicketRecordStore(Protocol):
    """Grava metadados do chamado já notificado."""

    def save(self, record: TicketRecord) -> None: ...
