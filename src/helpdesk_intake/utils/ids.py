"""Geradores de identificadores."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def new_session_id() -> str:
    """Gera um session_id único."""

    return str(uuid.uuid4())


def new_reference_id(now: datetime | None = None) -> str:
    """Gera referência de chamado no formato REF-YYYYMMDD-XXXXXX."""

    moment = now or datetime.now(tz=UTC)
    suffix = uuid.uuid4().hex[:6].upper()
    return f"REF-{moment:%Y%m%d}-{suffix}"
