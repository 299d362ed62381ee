"""Sanitização de conteúdo com PII antes de enviar texto à capacidade semântica.

Responsabilidade:
- Mascarar e-mails, telefones e credenciais literais
- Garantir determinismo (mesma entrada = mesma saída)
- Minimizar histórico enviado (últimas N mensagens)
"""

from __future__ import annotations

import re
from re import Pattern

from helpdesk_intake.application.security_scanner import redact_sensitive

# Compilar patterns uma vez (performance + determinismo)
_PATTERNS: dict[str, Pattern[str]] = {
    # E-mail
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    # Telefone: +1 (555) 123-4567, 555-123-4567, +44 20 7946 0958
    "phone": re.compile(
        r"(?<!\w)\+?\d{1,3}[\s.-]?\(?\d{2,4}\)?[\s.-]?\d{3,4}[\s.-]?\d{4}(?!\w)"
    ),
}

MAX_HISTORY = 6


def sanitize_text(text: str) -> str:
    """Mascara PII em texto livre.

    Exemplos:
        >>> sanitize_text("Contact me at john@example.com")
        'Contact me at [EMAIL]'
    """
    if not text:
        return text

    # Ordem: credenciais literais → e-mail → telefone
    result = redact_sensitive(text)
    result = _PATTERNS["email"].sub("[EMAIL]", result)
    result = _PATTERNS["phone"].sub("[PHONE]", result)
    return result


def mask_pii_in_history(messages: list[str], max_history: int = MAX_HISTORY) -> list[str]:
    """Trunca para as últimas `max_history` mensagens e mascara cada uma."""
    if not messages:
        return []

    truncated = messages[-max_history:] if len(messages) > max_history else messages
    return [sanitize_text(msg) for msg in truncated]
