"""Modelos do chamado entregue ao colaborador de notificação."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from helpdesk_intake.domain.enums import Category, Urgency

NOT_PROVIDED = "Not provided"


class CustomerInfo(BaseModel):
    """Bloco do solicitante; campos ausentes viram "Not provided"."""

    full_name: str = NOT_PROVIDED
    email: str = NOT_PROVIDED
    phone: str = NOT_PROVIDED
    company: str = NOT_PROVIDED
    agent_name: str = NOT_PROVIDED


class TicketPayload(BaseModel):
    """Payload completo do chamado (transcript já redigido)."""

    reference_id: str
    session_id: str
    created_at: datetime
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    category: Category
    urgency: Urgency
    impact: str
    problem: str
    affected_system: str | None = None
    error_text: str | None = None
    summary: str
    details: str = ""
    key_details: list[str] = Field(default_factory=list)
    transcript: list[str] = Field(default_factory=list)


class NotificationReceipt(BaseModel):
    """Confirmação devolvida pelo notificador."""

    delivered: bool = True
    external_id: str | None = None


class TicketRecord(BaseModel):
    """Metadados persistidos após notificação bem-sucedida."""

    reference_id: str
    session_id: str
    created_at: datetime
    category: Category
    urgency: Urgency
    summary: str
    email_sent: bool
