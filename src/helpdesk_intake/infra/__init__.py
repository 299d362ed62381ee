"""Camada de infraestrutura: adapters de persistência e notificação.

- Session: InMemorySessionStore, RedisSessionStore, create_session_store
- Tickets: InMemoryTicketNotifier, WebhookTicketNotifier, InMemoryTicketRecordStore

Infraestrutura não decide regra de negócio; logs nunca carregam PII.
"""

from helpdesk_intake.infra.session_contract import SessionStore, SessionStoreError
from helpdesk_intake.infra.session_store import create_session_store
from helpdesk_intake.infra.session_store_memory import InMemorySessionStore
from helpdesk_intake.infra.session_store_redis import RedisSessionStore
from helpdesk_intake.infra.session_sweeper import SessionSweeper
from helpdesk_intake.infra.ticket_notifier_memory import InMemoryTicketNotifier
from helpdesk_intake.infra.ticket_notifier_webhook import WebhookTicketNotifier
from helpdesk_intake.infra.ticket_records import InMemoryTicketRecordStore

__all__ = [
    "InMemorySessionStore",
    "InMemoryTicketNotifier",
    "InMemoryTicketRecordStore",
    "RedisSessionStore",
    "SessionStore",
    "SessionStoreError",
    "SessionSweeper",
    "WebhookTicketNotifier",
    "create_session_store",
]
