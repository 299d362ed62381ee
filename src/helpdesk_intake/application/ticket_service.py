"""TicketService: monta o payload do chamado e aciona os colaboradores.

Fluxo:
1. Resumo via capacidade semântica (ou fallback determinístico)
2. TicketPayload com transcript redigido
3. Notificação (falha → TicketSubmissionError; intake preservado pelo chamador)
4. Registro de metadados (falha → aviso, chamado já foi criado)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from helpdesk_intake.ai.capability_caller import CapabilityPolicy, call_capability
from helpdesk_intake.ai.contracts import TicketSummary, TicketSummaryRequest
from helpdesk_intake.application.security_scanner import redact_sensitive
from helpdesk_intake.application.session.models import SessionState
from helpdesk_intake.domain.enums import Sender, Urgency
from helpdesk_intake.domain.errors import (
    IntakeError,
    PersistenceFailureError,
    TicketSubmissionError,
)
from helpdesk_intake.domain.intake import NO_ERROR_PROVIDED
from helpdesk_intake.domain.protocols.capabilities import SemanticCapability
from helpdesk_intake.domain.protocols.ticketing import TicketNotifier, TicketRecordStore
from helpdesk_intake.domain.tickets import CustomerInfo, TicketPayload, TicketRecord
from helpdesk_intake.observability.logging import get_logger, log_fallback, short_id
from helpdesk_intake.utils.ids import new_reference_id

logger: logging.Logger = get_logger(__name__)

METADATA_WARNING = "Ticket submitted but metadata could not be saved"
SUMMARY_MAX_CHARS = 200


@dataclass(slots=True, frozen=True)
class SubmissionOutcome:
    reference_id: str
    email_sent: bool
    warning: str | None = None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def fallback_summary(session: SessionState) -> TicketSummary:
    """Resumo determinístico a partir do intake."""
    intake = session.intake
    problem = intake.problem or "Support request"
    headline = f"[{intake.category or 'other'}] {problem}"
    if len(headline) > SUMMARY_MAX_CHARS:
        headline = headline[: SUMMARY_MAX_CHARS - 3].rstrip() + "..."

    key_details = [f"Urgency: {intake.urgency}"] if intake.urgency else []
    if intake.affected_system:
        key_details.append(f"Affected system: {intake.affected_system}")
    if intake.error_text and intake.error_text != NO_ERROR_PROVIDED:
        key_details.append(f"Error: {intake.error_text}")

    return TicketSummary(summary=headline, details=problem, key_details=key_details)


def build_transcript(session: SessionState) -> list[str]:
    """Transcript redigido ("User: ..." / "Assistant: ...")."""
    return [
        f"{'User' if m.sender == Sender.USER else 'Assistant'}: {redact_sensitive(m.text)}"
        for m in session.message_history
    ]


def _customer(session: SessionState) -> CustomerInfo:
    provided = session.user_context.model_dump(exclude_none=True)
    return CustomerInfo(**{k: v for k, v in provided.items() if v})


class TicketService:
    """Cria o chamado a partir de uma sessão aprovada pelo gate."""

    def __init__(
        self,
        notifier: TicketNotifier,
        records: TicketRecordStore | None = None,
        capability: SemanticCapability | None = None,
        *,
        policy: CapabilityPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._notifier = notifier
        self._records = records
        self._capability = capability
        self._policy = policy
        self._clock = clock or _utcnow

    async def submit(self, session: SessionState) -> SubmissionOutcome:
        """Notifica o chamado e grava metadados.

        Raises:
            TicketSubmissionError: notificador falhou (nenhum chamado criado)
        """
        intake = session.intake
        if intake.category is None or intake.urgency is None or not intake.problem:
            raise TicketSubmissionError("Intake incomplete for ticket creation")

        now = self._clock()
        summary = await self._summarize(session)
        reference_id = new_reference_id(now)
        payload = TicketPayload(
            reference_id=reference_id,
            session_id=session.session_id,
            created_at=now,
            customer=_customer(session),
            category=intake.category,
            urgency=intake.urgency,
            impact="blocked" if intake.urgency == Urgency.BLOCKED else "single_user",
            problem=intake.problem,
            affected_system=intake.affected_system,
            error_text=intake.error_text,
            summary=summary.summary,
            details=summary.details,
            key_details=summary.key_details,
            transcript=build_transcript(session),
        )

        try:
            receipt = await self._notifier.notify(payload)
        except TicketSubmissionError:
            raise
        except Exception as e:
            logger.error(
                "ticket_notification_failed",
                extra={"session_id": short_id(session.session_id), "error": type(e).__name__},
            )
            raise TicketSubmissionError(f"Notifier failed: {type(e).__name__}") from e

        warning = None
        try:
            self._save_record(payload, receipt.delivered)
        except PersistenceFailureError:
            warning = METADATA_WARNING
            logger.warning(
                "ticket_metadata_not_saved",
                extra={"reference_id": reference_id, "session_id": short_id(session.session_id)},
            )

        logger.info(
            "ticket_submitted",
            extra={
                "reference_id": reference_id,
                "session_id": short_id(session.session_id),
                "category": payload.category.value,
                "urgency": payload.urgency.value,
            },
        )
        return SubmissionOutcome(reference_id, receipt.delivered, warning)

    async def _summarize(self, session: SessionState) -> TicketSummary:
        capability = self._capability
        if capability is None:
            log_fallback(logger, "ticket_summary", reason="capability_not_configured")
            return fallback_summary(session)

        request = TicketSummaryRequest(
            intake={name.value: str(value) for name, value in session.intake.collected().items()},
            transcript=build_transcript(session),
        )
        try:
            return await call_capability(
                "ticket_summary",
                lambda: capability.summarize_ticket(request),
                TicketSummary,
                self._policy,
            )
        except IntakeError as e:
            log_fallback(logger, "ticket_summary", reason=type(e).__name__)
            return fallback_summary(session)

    def _save_record(self, payload: TicketPayload, delivered: bool) -> None:
        if self._records is None:
            return
        record = TicketRecord(
            reference_id=payload.reference_id,
            session_id=payload.session_id,
            created_at=payload.created_at,
            category=payload.category,
            urgency=payload.urgency,
            summary=payload.summary,
            email_sent=delivered,
        )
        try:
            self._records.save(record)
        except Exception as e:
            raise PersistenceFailureError(f"Ticket record not saved: {type(e).__name__}") from e
