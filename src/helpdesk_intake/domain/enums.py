"""Enums de domínio: categorias, urgência, intenções, ações e veredictos."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    """Categorias fechadas de chamado."""

    PASSWORD = "password"
    HARDWARE = "hardware"
    SOFTWARE = "software"
    NETWORK = "network"
    EMAIL = "email"
    OTHER = "other"


class Urgency(StrEnum):
    """Níveis de urgência aceitos."""

    BLOCKED = "blocked"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Intent(StrEnum):
    """Intenções possíveis de uma mensagem do usuário."""

    PROVIDE_INFO = "PROVIDE_INFO"
    ASK_QUESTION = "ASK_QUESTION"
    ADD_MORE_INFO = "ADD_MORE_INFO"
    INTERRUPT_WAIT = "INTERRUPT_WAIT"
    CONFIRM_SUBMIT = "CONFIRM_SUBMIT"
    DENY_SUBMIT = "DENY_SUBMIT"
    NO_MORE_INFO = "NO_MORE_INFO"
    FRUSTRATION = "FRUSTRATION"
    IDLE = "IDLE"
    SECURITY_RISK = "SECURITY_RISK"
    OFF_TOPIC = "OFF_TOPIC"


class Action(StrEnum):
    """Ações de alto nível propostas pelo reasoner (consultivas)."""

    ACKNOWLEDGE_AND_EXTRACT = "ACKNOWLEDGE_AND_EXTRACT"
    ACKNOWLEDGE_ONLY = "ACKNOWLEDGE_ONLY"
    EXTRACT_MULTIPLE = "EXTRACT_MULTIPLE"
    ASK_CLARIFICATION = "ASK_CLARIFICATION"
    ASK_QUESTION = "ASK_QUESTION"
    WAIT = "WAIT"
    SHOW_SUMMARY = "SHOW_SUMMARY"
    REDIRECT_OFF_TOPIC = "REDIRECT_OFF_TOPIC"
    REDIRECT_SECURITY = "REDIRECT_SECURITY"
    SUBMIT = "SUBMIT"


EXTRACTING_ACTIONS = frozenset({
    Action.ACKNOWLEDGE_AND_EXTRACT,
    Action.EXTRACT_MULTIPLE,
})


class SecurityVerdict(StrEnum):
    """Resultado do scanner de dados sensíveis."""

    PASS = "PASS"
    SAFE = "SAFE"
    BLOCK = "BLOCK"


class PatternType(StrEnum):
    """Família de padrão que produziu o veredicto."""

    NONE = "NONE"
    LITERAL = "LITERAL"
    HIGH_RISK_INTENT = "HIGH_RISK_INTENT"
    CREDENTIAL_SHARE = "CREDENTIAL_SHARE"
    SAFE_CONTEXT = "SAFE_CONTEXT"
    AMBIGUOUS_SHARE = "AMBIGUOUS_SHARE"


class MessageType(StrEnum):
    """Tipo da resposta entregue ao transporte."""

    QUESTION = "question"
    INFO = "info"
    WARNING = "warning"
    WAITING = "waiting"
    SUMMARY = "summary"
    SUCCESS = "success"
    ERROR = "error"


class Sender(StrEnum):
    """Autor de uma entrada do histórico."""

    USER = "user"
    SYSTEM = "system"
