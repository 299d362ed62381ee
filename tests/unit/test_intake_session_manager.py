"""Testes do SessionManager e do registro de locks por sessão."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from helpdesk_intake.application.session import SessionLockRegistry, UserContext
from helpdesk_intake.application.session.manager import SessionManager
from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.errors import SessionNotFoundError


class TestSessionManager:
    def test_create_persists_in_init(self, session_store, settings):
        manager = SessionManager(session_store=session_store, settings=settings)

        session = manager.create(UserContext(full_name="Ana"))

        assert session.conversation_state == ConversationState.INIT
        assert session_store.exists(session.session_id)
        assert session.user_context.full_name == "Ana"

    def test_persist_sets_expiry(self, session_store, settings, fake_clock):
        clock = fake_clock
        manager = SessionManager(session_store=session_store, settings=settings, clock=clock)
        session = manager.create()

        clock.advance(minutes=5)
        manager.persist(session)

        assert session.updated_at == clock.current
        assert session.expires_at == clock.current + timedelta(minutes=30)

    def test_load_unknown_raises(self, session_manager):
        with pytest.raises(SessionNotFoundError):
            session_manager.load("does-not-exist")

    def test_delete(self, session_manager):
        session = session_manager.create()

        assert session_manager.delete(session.session_id) is True
        assert session_manager.delete(session.session_id) is False


class TestSessionLockRegistry:
    @pytest.mark.asyncio
    async def test_same_session_is_serialized(self):
        registry = SessionLockRegistry()
        order: list[str] = []

        async def turn(name: str) -> None:
            async with registry.hold("s-1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(turn("a"), turn("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_locks_are_released(self):
        registry = SessionLockRegistry()

        async with registry.hold("s-1"):
            assert registry.active_sessions() == 1

        assert registry.active_sessions() == 0
