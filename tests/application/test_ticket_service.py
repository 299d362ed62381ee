"""Testes do TicketService (payload, notificação e metadados)."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from helpdesk_intake.ai.capability_caller import CapabilityPolicy
from helpdesk_intake.application.session.models import SessionState, UserContext
from helpdesk_intake.application.ticket_service import (
    METADATA_WARNING,
    TicketService,
    build_transcript,
    fallback_summary,
)
from helpdesk_intake.domain.enums import Category, Sender, Urgency
from helpdesk_intake.domain.errors import TicketSubmissionError
from helpdesk_intake.domain.intake import IntakeFields
from helpdesk_intake.domain.tickets import NOT_PROVIDED
from helpdesk_intake.infra.ticket_notifier_memory import InMemoryTicketNotifier
from helpdesk_intake.infra.ticket_records import InMemoryTicketRecordStore

NOW = datetime(2025, 3, 14, 10, 0, tzinfo=UTC)
NO_RETRY = CapabilityPolicy(max_retries=0, timeout_seconds=1.0)


def _ready_session() -> SessionState:
    session = SessionState(
        session_id="ticket-session-0001",
        user_context=UserContext(full_name="Dana Reyes", email="dana@example.com"),
        intake=IntakeFields(
            problem="Can't log into Outlook",
            category=Category.EMAIL,
            urgency=Urgency.BLOCKED,
            affected_system="Outlook",
            error_text="invalid credentials",
        ),
    )
    session.append_message(Sender.USER, "Can't log into Outlook, password: hunter2abc")
    session.append_message(Sender.SYSTEM, "Should I submit this ticket? (yes/no)")
    return session


class FailingNotifier:
    async def notify(self, payload):
        raise ConnectionError("smtp down")


class FailingRecords:
    def save(self, record):
        raise OSError("disk full")


class TestHelpers:
    def test_transcript_is_redacted(self):
        transcript = build_transcript(_ready_session())

        assert transcript[0] == "User: Can't log into Outlook, [REDACTED]"
        assert transcript[1].startswith("Assistant: ")

    def test_fallback_summary(self):
        summary = fallback_summary(_ready_session())

        assert summary.summary == "[email] Can't log into Outlook"
        assert "Urgency: blocked" in summary.key_details
        assert "Error: invalid credentials" in summary.key_details


class TestTicketService:
    @pytest.mark.asyncio
    async def test_submit_notifies_and_records(self):
        notifier = InMemoryTicketNotifier()
        records = InMemoryTicketRecordStore()
        service = TicketService(notifier, records, clock=lambda: NOW)

        outcome = await service.submit(_ready_session())

        assert outcome.reference_id.startswith("REF-20250314-")
        assert outcome.email_sent is True
        assert outcome.warning is None
        payload = notifier.sent[0]
        assert payload.impact == "blocked"
        assert payload.customer.full_name == "Dana Reyes"
        assert payload.customer.phone == NOT_PROVIDED
        assert records.get(outcome.reference_id) is not None

    @pytest.mark.asyncio
    async def test_notifier_failure_raises(self):
        service = TicketService(FailingNotifier(), InMemoryTicketRecordStore())

        with pytest.raises(TicketSubmissionError):
            await service.submit(_ready_session())

    @pytest.mark.asyncio
    async def test_record_failure_becomes_warning(self):
        notifier = InMemoryTicketNotifier()
        service = TicketService(notifier, FailingRecords())

        outcome = await service.submit(_ready_session())

        assert outcome.warning == METADATA_WARNING
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_incomplete_intake_is_refused(self):
        session = _ready_session()
        session.intake.urgency = None
        notifier = InMemoryTicketNotifier()

        with pytest.raises(TicketSubmissionError):
            await TicketService(notifier).submit(session)
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_semantic_summary_is_used(self, make_capability):
        capability = make_capability(
            summarize_ticket={
                "summary": "User cannot sign into Outlook",
                "details": "Blocked since this morning",
                "key_details": ["Outlook", "invalid credentials"],
            }
        )
        notifier = InMemoryTicketNotifier()
        service = TicketService(notifier, capability=capability, policy=NO_RETRY)

        await service.submit(_ready_session())

        assert notifier.sent[0].summary == "User cannot sign into Outlook"
        _, request = capability.calls[0]
        assert all("hunter2abc" not in line for line in request.transcript)

    @pytest.mark.asyncio
    async def test_semantic_summary_failure_falls_back(self, make_capability):
        capability = make_capability(summarize_ticket={"summary": ""})
        notifier = InMemoryTicketNotifier()
        service = TicketService(notifier, capability=capability, policy=NO_RETRY)

        await service.submit(_ready_session())

        assert notifier.sent[0].summary == "[email] Can't log into Outlook"
