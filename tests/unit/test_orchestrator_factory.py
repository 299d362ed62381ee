"""Testes da factory build_orchestrator."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from helpdesk_intake.application.factory import build_orchestrator, build_sweeper
from helpdesk_intake.application.orchestrator import ConversationOrchestrator
from helpdesk_intake.config.settings import Settings
from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.infra.session_store_memory import InMemorySessionStore
from helpdesk_intake.infra.session_sweeper import SessionSweeper
from helpdesk_intake.infra.ticket_notifier_memory import InMemoryTicketNotifier


class TestBuildOrchestrator:
    def test_defaults_build_deterministic_engine(self):
        orchestrator = build_orchestrator(settings=Settings())

        assert isinstance(orchestrator, ConversationOrchestrator)
        assert orchestrator.start_session().conversation_state == ConversationState.INIT

    def test_webhook_without_url_fails(self):
        with pytest.raises(ValueError, match="TICKET_WEBHOOK_URL"):
            build_orchestrator(settings=Settings(ticket_notifier_backend="webhook"))

    def test_unknown_notifier_backend_fails(self):
        with pytest.raises(ValueError):
            build_orchestrator(settings=Settings(ticket_notifier_backend="carrier-pigeon"))

    def test_redis_backend_uses_injected_client(self):
        redis_client = MagicMock()

        orchestrator = build_orchestrator(
            settings=Settings(session_store_backend="redis"), redis_client=redis_client
        )
        orchestrator.start_session()

        assert redis_client.setex.called

    @pytest.mark.asyncio
    async def test_explicit_notifier_is_used(self):
        notifier = InMemoryTicketNotifier()
        orchestrator = build_orchestrator(settings=Settings(), notifier=notifier)
        session_id = orchestrator.start_session().session_id

        await orchestrator.handle_message(
            session_id, "I can't log into Outlook, it's urgent, error says 'invalid credentials'"
        )
        response = await orchestrator.handle_message(session_id, "yes")

        assert response.conversation_state == ConversationState.SUBMITTED
        assert len(notifier.sent) == 1


class TestBuildSweeper:
    def test_sweeper_purges_the_orchestrator_store(self):
        now = [1000.0]
        store = InMemorySessionStore(clock=lambda: now[0])
        settings = Settings(session_sweep_interval_seconds=60)
        orchestrator = build_orchestrator(settings=settings, session_store=store)
        orchestrator.start_session()

        sweeper = build_sweeper(store, settings=settings)
        now[0] += settings.session_ttl_seconds + 1

        assert isinstance(sweeper, SessionSweeper)
        assert sweeper.sweep_once() == 1
        assert len(store) == 0
