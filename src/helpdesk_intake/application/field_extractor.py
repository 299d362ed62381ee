"""Extração de campos do chamado a partir de uma mensagem.

Responsabilidades:
- Propor valores apenas para os campos solicitados
- Validar category/urgency contra os conjuntos fechados (descartar, nunca coagir)
- Fallback determinístico por regras quando a capacidade semântica falha

Contrato: `extract` nunca lança exceção.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from helpdesk_intake.ai.capability_caller import CapabilityPolicy, call_capability
from helpdesk_intake.ai.contracts import FieldExtractionRequest, FieldExtractionResult
from helpdesk_intake.domain.enums import Category, Urgency
from helpdesk_intake.domain.errors import IntakeError
from helpdesk_intake.domain.intake import (
    NO_ERROR_PROVIDED,
    FieldCandidate,
    IntakeField,
    IntakeFields,
)
from helpdesk_intake.domain.protocols.capabilities import SemanticCapability
from helpdesk_intake.observability.logging import get_logger, log_fallback
from helpdesk_intake.observability.timing import timed

logger: logging.Logger = get_logger(__name__)

MAX_VALUE_CHARS = 500

# Ordem importa: email antes de password ("can't log into Outlook" → email)
CATEGORY_KEYWORDS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.EMAIL,
        (
            "outlook", "email", "e-mail", "mail", "exchange",
            "o365", "office 365", "inbox", "mailbox",
        ),
    ),
    (
        Category.PASSWORD,
        (
            "password",
            "log in",
            "login",
            "log into",
            "sign in",
            "locked out",
            "credentials",
            "reset",
            "mfa",
            "2fa",
            "unlock",
        ),
    ),
    (
        Category.NETWORK,
        ("network", "wifi", "wi-fi", "vpn", "internet", "connection", "ethernet", "dns", "router"),
    ),
    (
        Category.HARDWARE,
        (
            "laptop",
            "printer",
            "monitor",
            "keyboard",
            "mouse",
            "screen",
            "computer",
            "pc",
            "battery",
            "dock",
            "headset",
            "hardware",
        ),
    ),
    (
        Category.SOFTWARE,
        (
            "software",
            "application",
            "app",
            "excel",
            "word",
            "teams",
            "install",
            "update",
            "crash",
            "crashes",
            "program",
            "browser",
        ),
    ),
)

_CATEGORY_PATTERNS: tuple[tuple[Category, re.Pattern[str]], ...] = tuple(
    (category, re.compile(r"\b(" + "|".join(re.escape(k) for k in keywords) + r")\b"))
    for category, keywords in CATEGORY_KEYWORDS
)

# nome em minúsculas → nome canônico
KNOWN_SYSTEMS: dict[str, str] = {
    "outlook": "Outlook",
    "teams": "Teams",
    "excel": "Excel",
    "word": "Word",
    "powerpoint": "PowerPoint",
    "onedrive": "OneDrive",
    "sharepoint": "SharePoint",
    "vpn": "VPN",
    "wifi": "Wi-Fi",
    "wi-fi": "Wi-Fi",
    "zoom": "Zoom",
    "slack": "Slack",
    "chrome": "Chrome",
    "salesforce": "Salesforce",
    "sap": "SAP",
    "citrix": "Citrix",
    "jira": "Jira",
    "okta": "Okta",
    "windows": "Windows",
    "printer": "Printer",
}
_SYSTEM_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in sorted(KNOWN_SYSTEMS, key=len, reverse=True)) + r")\b"
)

_URGENCY_RULES: tuple[tuple[Urgency, re.Pattern[str]], ...] = (
    (
        Urgency.LOW,
        re.compile(
            r"\b(not\s+urgent|low\s+(priority|urgency)|minor|no\s+rush"
            r"|(have|there'?s|using|found)\s+a\s+workaround)\b"
        ),
    ),
    (
        Urgency.BLOCKED,
        re.compile(
            r"\b(blocked|blocking|critical|can'?t\s+work|cannot\s+work"
            r"|unable\s+to\s+work|emergency)\b"
        ),
    ),
    (
        Urgency.HIGH,
        re.compile(
            r"\b(urgent|urgently|high\s+priority|asap|important|as\s+soon\s+as\s+possible)\b"
        ),
    ),
    (Urgency.MEDIUM, re.compile(r"\b(medium|moderate|normal\s+priority)\b")),
)
URGENCY_SETTING_PATTERN = re.compile(
    r"\b(make\s+it|set\s+(it|urgency|priority)\s+to|(urgency|priority)\s+(is|should\s+be))\s+"
    r"(?P<level>blocked|high|medium|low|urgent|critical)\b"
)
_URGENCY_WORDS: dict[str, Urgency] = {
    "blocked": Urgency.BLOCKED,
    "critical": Urgency.BLOCKED,
    "high": Urgency.HIGH,
    "urgent": Urgency.HIGH,
    "medium": Urgency.MEDIUM,
    "low": Urgency.LOW,
}

_NO_ERROR = re.compile(
    r"\b(no\s+error(\s+message)?s?|there'?s\s+no\s+error|there\s+is\s+no\s+error"
    r"|didn'?t\s+see\s+(an?|any)\s+error|without\s+(an?|any)\s+error|no\s+message\s+at\s+all)\b"
)
_QUOTED_ERROR = re.compile(r"error[^'\"]{0,40}['\"]([^'\"]{2,200})['\"]", re.IGNORECASE)
_STATED_ERROR = re.compile(
    r"error\s*(?:message\s*)?(?:says|said|reads|shows|is|:)\s*(.{2,200})", re.IGNORECASE
)
_BARE_NO = re.compile(r"^(no|none|nothing|nope|n/?a|no\s+errors?)[\s.!]*$")


@dataclass(slots=True)
class ExtractionRequest:
    """Entrada da extração: mensagem, campos pedidos e contexto."""

    message: str
    requested_fields: list[IntakeField]
    intake: IntakeFields = field(default_factory=IntakeFields)
    last_bot_question: str | None = None
    last_expected_field: IntakeField | None = None
    conversation_summary: str = ""


@dataclass(slots=True)
class ExtractionResult:
    """Candidatos por campo e a camada que os produziu."""

    candidates: dict[IntakeField, FieldCandidate] = field(default_factory=dict)
    source: str = "rules"


def infer_category(*texts: str | None) -> Category | None:
    """Categoria pela tabela de palavras-chave (primeira família que casa)."""
    joined = " ".join(t.lower() for t in texts if t)
    if not joined:
        return None
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(joined):
            return category
    return None


def find_systems(text: str) -> list[str]:
    """Sistemas conhecidos citados, canônicos e sem repetição, na ordem do texto."""
    found: list[str] = []
    for match in _SYSTEM_PATTERN.finditer(text.lower()):
        name = KNOWN_SYSTEMS[match.group(1)]
        if name not in found:
            found.append(name)
    return found


def _clip(value: str) -> str:
    return value.strip()[:MAX_VALUE_CHARS]


def _extract_urgency(normalized: str, expected: IntakeField | None) -> FieldCandidate | None:
    explicit = URGENCY_SETTING_PATTERN.search(normalized)
    if explicit:
        return FieldCandidate(value=_URGENCY_WORDS[explicit.group("level")].value, confidence=0.9)

    confidence = 0.85 if expected == IntakeField.URGENCY else 0.75
    for urgency, pattern in _URGENCY_RULES:
        if pattern.search(normalized):
            return FieldCandidate(value=urgency.value, confidence=confidence)

    if expected == IntakeField.URGENCY:
        word = normalized.strip(" .!")
        if word in _URGENCY_WORDS:
            return FieldCandidate(value=_URGENCY_WORDS[word].value, confidence=0.85)
    return None


def _extract_category(normalized: str, expected: IntakeField | None) -> FieldCandidate | None:
    if expected == IntakeField.CATEGORY:
        word = normalized.strip(" .!")
        if word in {c.value for c in Category}:
            return FieldCandidate(value=word, confidence=0.9)
    category = infer_category(normalized)
    if category is None:
        return None
    return FieldCandidate(value=category.value, confidence=0.8)


def _extract_system(message: str, expected: IntakeField | None) -> FieldCandidate | None:
    systems = find_systems(message)
    if systems:
        return FieldCandidate(value=", ".join(systems), confidence=0.8)
    stripped = message.strip(" .!")
    if expected == IntakeField.AFFECTED_SYSTEM and 0 < len(stripped) <= 60:
        return FieldCandidate(value=stripped, confidence=0.75)
    return None


def _extract_error(message: str, expected: IntakeField | None) -> FieldCandidate | None:
    normalized = message.lower().strip()
    if _NO_ERROR.search(normalized):
        return FieldCandidate(value=NO_ERROR_PROVIDED, confidence=0.9)

    quoted = _QUOTED_ERROR.search(message)
    if quoted:
        return FieldCandidate(value=_clip(quoted.group(1)), confidence=0.85)

    stated = _STATED_ERROR.search(message)
    if stated:
        value = stated.group(1).strip().strip("'\".,!")
        if len(value) >= 2:
            return FieldCandidate(value=_clip(value), confidence=0.85)

    if expected == IntakeField.ERROR_TEXT:
        if _BARE_NO.search(normalized):
            return FieldCandidate(value=NO_ERROR_PROVIDED, confidence=0.85)
        if message.strip():
            return FieldCandidate(value=_clip(message), confidence=0.75)
    return None


def _extract_problem(message: str, expected: IntakeField | None) -> FieldCandidate | None:
    stripped = message.strip()
    if len(stripped) <= 10:
        return None
    if expected in (None, IntakeField.PROBLEM) or len(stripped) > 25:
        return FieldCandidate(value=_clip(stripped), confidence=0.75)
    return None


def extract_by_rules(request: ExtractionRequest) -> dict[IntakeField, FieldCandidate]:
    """Extração determinística (fallback) restrita aos campos solicitados."""
    message = request.message
    normalized = message.lower().strip()
    expected = request.last_expected_field

    extractors = {
        IntakeField.PROBLEM: lambda: _extract_problem(message, expected),
        IntakeField.CATEGORY: lambda: _extract_category(normalized, expected),
        IntakeField.URGENCY: lambda: _extract_urgency(normalized, expected),
        IntakeField.AFFECTED_SYSTEM: lambda: _extract_system(message, expected),
        IntakeField.ERROR_TEXT: lambda: _extract_error(message, expected),
    }

    candidates: dict[IntakeField, FieldCandidate] = {}
    for name in request.requested_fields:
        candidate = extractors[name]()
        if candidate is not None:
            candidates[name] = candidate
    return candidates


def _validated_value(name: IntakeField, value: str) -> str | None:
    """Valor aceito para o campo ou None (enum fora do conjunto é descartado)."""
    value = value.strip()
    if not value:
        return None
    if name == IntakeField.CATEGORY:
        return value.lower() if value.lower() in {c.value for c in Category} else None
    if name == IntakeField.URGENCY:
        return value.lower() if value.lower() in {u.value for u in Urgency} else None
    return _clip(value)


class FieldExtractor:
    """Extrator semântico com fallback por regras."""

    def __init__(
        self,
        capability: SemanticCapability | None = None,
        *,
        policy: CapabilityPolicy | None = None,
    ) -> None:
        self._capability = capability
        self._policy = policy

    async def extract(self, request: ExtractionRequest) -> ExtractionResult:
        if not request.requested_fields:
            return ExtractionResult(source="none")

        with timed("field_extractor"):
            semantic = await self._try_semantic(request)
            if isinstance(semantic, dict):
                return ExtractionResult(candidates=semantic, source="semantic")

            log_fallback(logger, "field_extractor", reason=semantic)
            candidates = extract_by_rules(request)
            logger.debug(
                "fields_extracted",
                extra={"source": "rules", "fields": sorted(f.value for f in candidates)},
            )
            return ExtractionResult(candidates=candidates, source="rules")

    async def _try_semantic(
        self, request: ExtractionRequest
    ) -> dict[IntakeField, FieldCandidate] | str:
        capability = self._capability
        if capability is None:
            return "capability_not_configured"

        known = {name.value: str(value) for name, value in request.intake.collected().items()}
        payload = FieldExtractionRequest(
            message=request.message,
            requested_fields=request.requested_fields,
            known_fields=known,
            last_bot_question=request.last_bot_question,
            conversation_summary=request.conversation_summary,
        )
        try:
            result = await call_capability(
                "field_extraction",
                lambda: capability.extract_fields(payload),
                FieldExtractionResult,
                self._policy,
            )
        except IntakeError as e:
            return type(e).__name__

        candidates: dict[IntakeField, FieldCandidate] = {}
        for name in request.requested_fields:
            raw = result.fields.get(name.value)
            if raw is None or raw.value is None:
                continue
            value = _validated_value(name, raw.value)
            if value is None:
                logger.info("extracted_value_discarded", extra={"field": name.value})
                continue
            candidates[name] = FieldCandidate(value=value, confidence=raw.confidence)

        ignored = set(result.fields) - {f.value for f in request.requested_fields}
        if ignored:
            logger.debug("unrequested_fields_ignored", extra={"fields": sorted(ignored)})
        return candidates
