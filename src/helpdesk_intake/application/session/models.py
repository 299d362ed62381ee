"""Models de sessão: SessionState, o agregado por conversa.

- Uma sessão = um session_id único, escrita por um único turno de cada vez
- Mutada apenas pelo orquestrador, sempre como resultado atômico de um turno
- Após SUBMITTED, intake e confidence_by_field são imutáveis
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import Sender
from helpdesk_intake.domain.intake import IntakeField, IntakeFields


def _now() -> datetime:
    return datetime.now(tz=UTC)


class ChatMessage(BaseModel):
    """Entrada do histórico (append-only, ordenado)."""

    sender: Sender
    text: str
    created_at: datetime = Field(default_factory=_now)


class UserContext(BaseModel):
    """Dados do solicitante fornecidos pelo transporte (opcionais)."""

    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    agent_name: str | None = None


class SessionState(BaseModel):
    """Estado completo da conversa com suporte a persistência."""

    session_id: str
    user_context: UserContext = Field(default_factory=UserContext)
    intake: IntakeFields = Field(default_factory=IntakeFields)
    confidence_by_field: dict[IntakeField, float] = Field(default_factory=dict)
    conversation_state: ConversationState = ConversationState.INIT

    last_bot_question: str | None = None
    last_expected_field: IntakeField | None = None

    submission_approved: bool = False
    approval_turn: int | None = None
    submission_declined: bool = False

    message_history: list[ChatMessage] = Field(default_factory=list)
    blocked_from_state: ConversationState | None = None
    security_blocks: int = 0
    turn_count: int = 0
    reference_id: str | None = None

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    expires_at: datetime | None = None

    @property
    def is_submitted(self) -> bool:
        return self.conversation_state == ConversationState.SUBMITTED

    def append_message(self, sender: Sender, text: str, now: datetime | None = None) -> None:
        """Anexa mensagem ao histórico (nunca reescreve entradas anteriores)."""
        self.message_history.append(ChatMessage(sender=sender, text=text, created_at=now or _now()))

    def user_messages(self) -> list[str]:
        return [m.text for m in self.message_history if m.sender == Sender.USER]

    def recent_turns(self, limit: int = 6) -> list[str]:
        """Últimas entradas no formato "User: ..." / "Assistant: ..."."""
        turns = self.message_history[-limit:] if limit else []
        return [
            f"{'User' if m.sender == Sender.USER else 'Assistant'}: {m.text}" for m in turns
        ]
