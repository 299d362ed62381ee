"""Package `session`: ciclo de vida e persistência de sessão.

Exports principais:
- SessionState: agregado por conversa (de session/models.py)
- SessionLockRegistry: serialização por sessão (de session/locks.py)
- SessionManager: gerenciador de ciclo de vida (de session/manager.py)
"""

from __future__ import annotations

from helpdesk_intake.application.session.locks import SessionLockRegistry
from helpdesk_intake.application.session.models import ChatMessage, SessionState, UserContext

__all__ = ["ChatMessage", "SessionLockRegistry", "SessionManager", "SessionState", "UserContext"]


def __getattr__(name: str):
    """Lazy import do manager (evita import circular com infra)."""
    if name == "SessionManager":
        from helpdesk_intake.application.session.manager import SessionManager

        return SessionManager
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
