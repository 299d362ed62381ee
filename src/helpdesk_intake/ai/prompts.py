"""Prompts da capacidade semântica (todos exigem JSON estrito).

Todo texto do usuário passa pelo sanitizer antes de compor o prompt.
"""

from __future__ import annotations

import json

from helpdesk_intake.ai.contracts import (
    FieldExtractionRequest,
    IntentClassificationRequest,
    ReasonerRequest,
    TicketSummaryRequest,
)
from helpdesk_intake.ai.sanitizer import mask_pii_in_history, sanitize_text
from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import Action, Category, Intent, Urgency
from helpdesk_intake.domain.intake import IntakeField

_INTENT_SYSTEM = (
    "You classify messages in an IT support intake chat. "
    "Respond with JSON only: "
    '{"intent": <one of the allowed intents>, "confidence": <0..1>, "rationale": <short>}.'
)

_EXTRACTION_SYSTEM = (
    "You extract structured IT support ticket fields from a chat message. "
    "Only return the fields you were asked for. Never invent values. "
    'Respond with JSON only: {"fields": {"<field>": {"value": <string>, "confidence": <0..1>}}}.'
)

_REASONER_SYSTEM = (
    "You decide the next conversational action for an IT support intake assistant. "
    "You never submit tickets; you only suggest. Respond with JSON only."
)

_SUMMARY_SYSTEM = (
    "You write a concise IT support ticket summary. "
    'Respond with JSON only: {"summary": <max 200 chars>, "details": <string>, '
    '"key_details": [<string>, ...]}.'
)


def build_intent_prompt(request: IntentClassificationRequest) -> tuple[str, str]:
    """Monta (system, user) para classificação de intenção."""
    user = (
        f"Allowed intents: {[i.value for i in Intent]}\n"
        f"Conversation state: {request.conversation_state.value}\n"
        f"Last question asked: {request.last_bot_question or '-'}\n"
        f"Field being collected: {_field_name(request.last_expected_field)}\n"
        f"Recent turns: {json.dumps(mask_pii_in_history(request.recent_turns))}\n"
        f"Message: {sanitize_text(request.message)}"
    )
    return _INTENT_SYSTEM, user


def build_extraction_prompt(request: FieldExtractionRequest) -> tuple[str, str]:
    """Monta (system, user) para extração de campos."""
    known = {name: sanitize_text(value) for name, value in request.known_fields.items()}
    user = (
        f"Fields to extract: {[f.value for f in request.requested_fields]}\n"
        f"Allowed category values: {[c.value for c in Category]}\n"
        f"Allowed urgency values: {[u.value for u in Urgency]}\n"
        "If the user says there is no error message, use error_text = \"no error provided\".\n"
        f"Known fields: {json.dumps(known)}\n"
        f"Last question asked: {request.last_bot_question or '-'}\n"
        f"Conversation summary: {sanitize_text(request.conversation_summary)}\n"
        f"Message: {sanitize_text(request.message)}"
    )
    return _EXTRACTION_SYSTEM, user


def build_reasoner_prompt(request: ReasonerRequest) -> tuple[str, str]:
    """Monta (system, user) para o reasoner consultivo."""
    schema = {
        "action": [a.value for a in Action],
        "should_acknowledge": "bool",
        "acknowledgment": "string|null",
        "fields_to_extract": [f.value for f in IntakeField],
        "should_ask_question": "bool",
        "question_to_ask": "string|null",
        "suggested_next_state": [s.value for s in ConversationState],
    }
    user = (
        f"Intent: {request.intent.value} (confidence {request.intent_confidence:.2f})\n"
        f"Conversation state: {request.conversation_state.value}\n"
        f"Missing fields: {request.missing_fields}\n"
        f"User declined the last summary: {request.submission_declined}\n"
        f"Conversation summary: {sanitize_text(request.conversation_summary)}\n"
        f"Schema: {json.dumps(schema)}"
    )
    return _REASONER_SYSTEM, user


def build_summary_prompt(request: TicketSummaryRequest) -> tuple[str, str]:
    """Monta (system, user) para o resumo do chamado."""
    intake = {name: sanitize_text(value) for name, value in request.intake.items()}
    user = (
        f"Intake: {json.dumps(intake)}\n"
        f"Transcript: {json.dumps(mask_pii_in_history(request.transcript, max_history=20))}"
    )
    return _SUMMARY_SYSTEM, user


def _field_name(field: IntakeField | None) -> str:
    return field.value if field else "-"
