"""Testes dos notificadores de chamado (memória e webhook)."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from helpdesk_intake.domain.enums import Category, Urgency
from helpdesk_intake.domain.errors import TicketSubmissionError
from helpdesk_intake.domain.tickets import TicketPayload, TicketRecord
from helpdesk_intake.infra.ticket_notifier_memory import InMemoryTicketNotifier
from helpdesk_intake.infra.ticket_notifier_webhook import WebhookTicketNotifier
from helpdesk_intake.infra.ticket_records import InMemoryTicketRecordStore

URL = "https://helpdesk.example.com/hooks/tickets"


def _payload() -> TicketPayload:
    return TicketPayload(
        reference_id="REF-20250314-ABC123",
        session_id="notifier-session-01",
        created_at=datetime(2025, 3, 14, tzinfo=UTC),
        category=Category.NETWORK,
        urgency=Urgency.MEDIUM,
        impact="single_user",
        problem="VPN drops every hour",
        summary="[network] VPN drops every hour",
    )


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestInMemoryTicketNotifier:
    @pytest.mark.asyncio
    async def test_collects_payloads(self):
        notifier = InMemoryTicketNotifier()

        receipt = await notifier.notify(_payload())

        assert receipt.delivered is True
        assert receipt.external_id == "REF-20250314-ABC123"
        assert notifier.sent[0].problem == "VPN drops every hour"


class TestWebhookTicketNotifier:
    @pytest.mark.asyncio
    async def test_posts_json_payload(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "HD-42"})

        async with _client(handler) as client:
            notifier = WebhookTicketNotifier(URL, client=client, headers={"X-Api-Key": "k"})
            receipt = await notifier.notify(_payload())

        assert receipt.external_id == "HD-42"
        body = json.loads(seen[0].content)
        assert body["reference_id"] == "REF-20250314-ABC123"
        assert body["category"] == "network"
        assert seen[0].headers["X-Api-Key"] == "k"

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        async with _client(lambda request: httpx.Response(503)) as client:
            notifier = WebhookTicketNotifier(URL, client=client)

            with pytest.raises(TicketSubmissionError):
                await notifier.notify(_payload())

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            notifier = WebhookTicketNotifier(URL, client=client)

            with pytest.raises(TicketSubmissionError):
                await notifier.notify(_payload())


class TestInMemoryTicketRecordStore:
    def test_save_and_get(self):
        store = InMemoryTicketRecordStore()
        record = TicketRecord(
            reference_id="REF-20250314-ABC123",
            session_id="notifier-session-01",
            created_at=datetime(2025, 3, 14, tzinfo=UTC),
            category=Category.NETWORK,
            urgency=Urgency.MEDIUM,
            summary="VPN drops",
            email_sent=True,
        )

        store.save(record)

        assert store.get("REF-20250314-ABC123") == record
        assert len(store) == 1
        assert store.get("REF-unknown") is None
