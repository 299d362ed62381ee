"""Configurações centralizadas do helpdesk_intake.

Uso típico:
    from helpdesk_intake.config import get_settings
"""

from helpdesk_intake.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
