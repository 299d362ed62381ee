"""Factory para construção do ConversationOrchestrator.

Responsabilidades:
- Conhecer infra e settings
- Escolher capacidade semântica, session store e notificador
- Retornar um `ConversationOrchestrator` pronto

Não conter lógica de conversa.
"""

from __future__ import annotations

from typing import Any

from helpdesk_intake.ai.capability_caller import CapabilityPolicy
from helpdesk_intake.application.field_extractor import FieldExtractor
from helpdesk_intake.application.field_merge import FieldMergeEngine
from helpdesk_intake.application.intent_classifier import IntentClassifier
from helpdesk_intake.application.orchestrator import ConversationOrchestrator
from helpdesk_intake.application.reasoner import ConversationReasoner
from helpdesk_intake.application.submission_gate import SubmissionGate
from helpdesk_intake.application.ticket_service import TicketService
from helpdesk_intake.config.settings import Settings, get_settings
from helpdesk_intake.domain.protocols.capabilities import SemanticCapability
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)


def _build_capability(settings: Settings) -> SemanticCapability | None:
    if not settings.openai_enabled:
        logger.info("semantic_capability_disabled")
        return None

    from helpdesk_intake.ai.openai_client import OpenAISemanticCapability

    return OpenAISemanticCapability(
        settings.openai_api_key,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    )


def _build_notifier(settings: Settings, http_client: Any | None) -> Any:
    backend = settings.ticket_notifier_backend.lower()

    if backend == "memory":
        from helpdesk_intake.infra import InMemoryTicketNotifier

        return InMemoryTicketNotifier()

    if backend == "webhook":
        if not settings.ticket_webhook_url:
            raise ValueError("TICKET_NOTIFIER_BACKEND=webhook requer TICKET_WEBHOOK_URL")
        from helpdesk_intake.infra import WebhookTicketNotifier

        return WebhookTicketNotifier(
            settings.ticket_webhook_url,
            timeout_seconds=settings.ticket_webhook_timeout_seconds,
            client=http_client,
        )

    raise ValueError(f"TICKET_NOTIFIER_BACKEND inválido: {backend}")


def build_orchestrator(
    *,
    capability: SemanticCapability | None = None,
    session_store: Any | None = None,
    notifier: Any | None = None,
    records: Any | None = None,
    redis_client: Any | None = None,
    http_client: Any | None = None,
    settings: Settings | None = None,
) -> ConversationOrchestrator:
    """Constrói o orquestrador usando infra/settings.

    Parâmetros explícitos têm prioridade; quando ausentes, o backend é
    resolvido a partir de `get_settings()`. Para a varredura periódica,
    crie o store com `create_session_store`, passe-o aqui e a `build_sweeper`.
    """
    settings = settings or get_settings()

    # Import infra apenas aqui
    from helpdesk_intake.application.session.manager import SessionManager
    from helpdesk_intake.infra import InMemoryTicketRecordStore, create_session_store

    if capability is None:
        capability = _build_capability(settings)

    if session_store is None:
        session_store = create_session_store(settings, redis_client=redis_client)
        logger.debug("factory: created session_store via create_session_store")

    if notifier is None:
        notifier = _build_notifier(settings, http_client)

    if records is None:
        records = InMemoryTicketRecordStore()

    policy = CapabilityPolicy(
        max_retries=settings.capability_max_retries,
        timeout_seconds=settings.capability_timeout_seconds,
    )
    sessions = SessionManager(session_store=session_store, settings=settings, logger=logger)
    tickets = TicketService(notifier, records, capability, policy=policy)

    orchestrator = ConversationOrchestrator(
        sessions,
        tickets,
        classifier=IntentClassifier(
            capability,
            confidence_threshold=settings.intent_confidence_threshold,
            policy=policy,
        ),
        extractor=FieldExtractor(capability, policy=policy),
        merger=FieldMergeEngine(category_lock_confidence=settings.category_lock_confidence),
        reasoner=ConversationReasoner(capability, policy=policy),
        gate=SubmissionGate(
            threshold=settings.field_confidence_threshold,
            password_error_threshold=settings.password_error_text_threshold,
            confirmation_window_turns=settings.confirmation_window_turns,
        ),
        settings=settings,
    )
    logger.info(
        "orchestrator_built",
        extra={
            "semantic_enabled": capability is not None,
            "session_backend": settings.session_store_backend,
            "notifier_backend": settings.ticket_notifier_backend,
        },
    )
    return orchestrator


def build_sweeper(session_store: Any, *, settings: Settings | None = None) -> Any:
    """SessionSweeper do store compartilhado com o orquestrador.

    O chamador agenda `sweeper.run(stop_event)` no seu event loop.
    """
    settings = settings or get_settings()

    from helpdesk_intake.infra import SessionSweeper

    logger.info(
        "session_sweeper_built",
        extra={"interval_seconds": settings.session_sweep_interval_seconds},
    )
    return SessionSweeper(session_store, interval_seconds=settings.session_sweep_interval_seconds)
