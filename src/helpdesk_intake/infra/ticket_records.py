"""Registro de metadados de chamados em memória."""

from __future__ import annotations

from helpdesk_intake.domain.tickets import TicketRecord
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)


class InMemoryTicketRecordStore:
    """Guarda TicketRecord por reference_id."""

    def __init__(self) -> None:
        self._records: dict[str, TicketRecord] = {}

    def save(self, record: TicketRecord) -> None:
        self._records[record.reference_id] = record
        logger.debug("ticket_record_saved", extra={"reference_id": record.reference_id})

    def get(self, reference_id: str) -> TicketRecord | None:
        return self._records.get(reference_id)

    def __len__(self) -> int:
        return len(self._records)
