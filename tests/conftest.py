from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from helpdesk_intake.application.orchestrator import ConversationOrchestrator
from helpdesk_intake.application.session.manager import SessionManager
from helpdesk_intake.application.ticket_service import TicketService
from helpdesk_intake.config.settings import Settings, get_settings
from helpdesk_intake.infra.session_store_memory import InMemorySessionStore
from helpdesk_intake.infra.ticket_notifier_memory import InMemoryTicketNotifier
from helpdesk_intake.infra.ticket_records import InMemoryTicketRecordStore


class FakeClock:
    """Relógio controlável para testes de TTL e timestamps."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 3, 14, 9, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeCapability:
    """Capacidade semântica roteirizada: devolve (ou lança) o valor por operação."""

    def __init__(self, **responses: object) -> None:
        self.responses = responses
        self.calls: list[tuple[str, object]] = []

    async def _respond(self, operation: str, request: object):
        self.calls.append((operation, request))
        value = self.responses.get(operation)
        if value is None:
            raise RuntimeError(f"{operation} not scripted")
        if isinstance(value, Exception):
            raise value
        return value

    async def classify_intent(self, request):
        return await self._respond("classify_intent", request)

    async def extract_fields(self, request):
        return await self._respond("extract_fields", request)

    async def decide_action(self, request):
        return await self._respond("decide_action", request)

    async def summarize_ticket(self, request):
        return await self._respond("summarize_ticket", request)

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)


@pytest.fixture()
def make_capability():
    return FakeCapability


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings() -> Settings:
    return Settings(openai_enabled=False)


@pytest.fixture()
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def session_manager(session_store, settings) -> SessionManager:
    return SessionManager(session_store=session_store, settings=settings)


@pytest.fixture()
def notifier() -> InMemoryTicketNotifier:
    return InMemoryTicketNotifier()


@pytest.fixture()
def records() -> InMemoryTicketRecordStore:
    return InMemoryTicketRecordStore()


@pytest.fixture()
def orchestrator(session_manager, notifier, records, settings) -> ConversationOrchestrator:
    return ConversationOrchestrator(
        session_manager,
        TicketService(notifier, records),
        settings=settings,
    )


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
