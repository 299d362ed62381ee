"""Scanner de dados sensíveis: decisão PASS / SAFE / BLOCK por mensagem.

Ordem estrita (primeiro match vence):
1. Padrões literais de credencial → BLOCK
2. Intenção explícita de compartilhar credencial → BLOCK
3. Linguagem genérica de compartilhamento → BLOCK (credencial), SAFE (contexto
   de erro) ou BLOCK (ambíguo, fail closed)
4. Nada encontrado → PASS

BLOCK nunca é erro: vira o estado BLOCKED_SECURITY e a mensagem não é gravada.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from re import Pattern

from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import PatternType, SecurityVerdict
from helpdesk_intake.domain.intake import IntakeField
from helpdesk_intake.observability.logging import get_logger

logger = get_logger(__name__)

REDACTED = "[REDACTED]"

ACKNOWLEDGEMENT_PROMPT = (
    "Please acknowledge that you understand and won't share sensitive information. "
    'Type "I understand" to continue.'
)

_CREDENTIAL_WORDS = r"(?:password|pin|code|token|otp|mfa|credentials)"
_SHARE_INTENT = r"(?:will|can|should|want\s+to|going\s+to|let\s+me|i'?ll|i\s+will)"
_SHARE_VERB = r"(?:share|send|give|provide|tell|show)"


@dataclass(slots=True, frozen=True)
class _SensitivePattern:
    name: str
    pattern: Pattern[str]
    message: str


# Compilar patterns uma vez (performance + determinismo)
LITERAL_PATTERNS: tuple[_SensitivePattern, ...] = (
    _SensitivePattern(
        "password",
        re.compile(r"password\s*[:=]\s*['\"]?([^'\"\s]{6,})['\"]?", re.IGNORECASE),
        "Please do not share passwords. For security reasons, we cannot accept "
        "passwords through this chat.",
    ),
    _SensitivePattern(
        "mfa_code",
        re.compile(
            r"(?:mfa|2fa|two-factor|verification)\s*(?:code|token|number)\s*[:=]\s*"
            r"['\"]?([^'\"\s]{4,})['\"]?",
            re.IGNORECASE,
        ),
        "Please do not share MFA or verification codes. These are sensitive and "
        "should not be shared.",
    ),
    _SensitivePattern(
        "api_credential",
        re.compile(
            r"(?:api\s*key|access\s*token|secret\s*key|auth\s*token)\s*[:=]\s*"
            r"['\"]?([^'\"\s]{8,})['\"]?",
            re.IGNORECASE,
        ),
        "Please do not share API keys, tokens, or credentials. These are sensitive "
        "and should not be shared.",
    ),
    _SensitivePattern(
        "credit_card",
        re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
        "Please do not share credit card numbers or financial information through "
        "this chat.",
    ),
    _SensitivePattern(
        "ssn",
        re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
        "Please do not share Social Security Numbers or personal identification numbers.",
    ),
    _SensitivePattern(
        "pin",
        re.compile(
            r"(?:\bpin|personal\s*identification\s*number)\s*[:=]\s*['\"]?(\d{4,})['\"]?",
            re.IGNORECASE,
        ),
        "Please do not share PINs or personal identification numbers.",
    ),
)

_HIGH_RISK_MESSAGE = (
    "For security reasons, please do not share passwords, PINs, codes, or tokens "
    "through this chat. If you need authentication help, I can guide you through "
    "the proper process."
)

HIGH_RISK_PATTERNS: tuple[_SensitivePattern, ...] = (
    _SensitivePattern(
        "credential_disclosure",
        re.compile(r"\bmy\s+(?:password|pin|code|token|otp)\s+is\b", re.IGNORECASE),
        "Please do not share passwords, PINs, codes, or tokens. For security reasons, "
        "we cannot accept sensitive credentials through this chat. If you need password "
        "reset assistance, I can help guide you through the proper process.",
    ),
    _SensitivePattern(
        "credential_then_share",
        re.compile(
            rf"\b{_CREDENTIAL_WORDS}\b.*\b{_SHARE_INTENT}\b.*\b{_SHARE_VERB}\b",
            re.IGNORECASE,
        ),
        _HIGH_RISK_MESSAGE,
    ),
    _SensitivePattern(
        "share_then_credential",
        re.compile(
            rf"\b{_SHARE_INTENT}\b.*\b{_SHARE_VERB}\b.*\b{_CREDENTIAL_WORDS}\b"
            r".*\b(?:with\s+you|to\s+you)\b",
            re.IGNORECASE,
        ),
        _HIGH_RISK_MESSAGE,
    ),
)

GENERIC_SHARE_PATTERNS: tuple[_SensitivePattern, ...] = (
    _SensitivePattern(
        "offer_to_share",
        re.compile(
            r"\b(?:i\s+will\s+share|i'll\s+share|can\s+i\s+send|here\s+is\s+my|"
            r"let\s+me\s+give\s+you|i\s+want\s+to\s+share)\b",
            re.IGNORECASE,
        ),
        "I understand you want to share information, but for security reasons, please "
        "do not share passwords, PINs, codes, or tokens through this chat. If you need "
        "password reset assistance, I can guide you through the proper process.",
    ),
    _SensitivePattern(
        "ask_to_share",
        re.compile(
            r"\b(?:should\s+i\s+send|can\s+i\s+provide|do\s+you\s+need\s+my|"
            r"would\s+you\s+like\s+my)\b",
            re.IGNORECASE,
        ),
        "For security reasons, please do not share passwords, PINs, codes, or tokens "
        "through this chat. If you need help with authentication, I can guide you "
        "through the proper process.",
    ),
)

_CREDENTIAL_KEYWORDS = re.compile(
    r"\b(?:password|passcode|pin|code|token|otp|mfa|2fa|two-factor|verification|"
    r"credentials|secret|api\s*key|auth\s*token)\b",
    re.IGNORECASE,
)
_SAFE_CONTEXT_KEYWORDS = re.compile(
    r"\b(?:error\s*message|error\s*text|exact\s*error|error\s*code|error|errors|log|logs|"
    r"screenshot|screenshots|details|information|message|text|output|result)\b",
    re.IGNORECASE,
)
_EXPLICIT_ERROR_MENTION = re.compile(
    r"\b(?:error\s*message|exact\s*error|error\s*text|error\s*code)\b", re.IGNORECASE
)
_BOT_ASKED_ABOUT_ERRORS = re.compile(
    r"\b(?:error|error\s*message|error\s*text|exact\s*error|what\s*error)\b", re.IGNORECASE
)

# "code" dentro de "error code" não conta como credencial
_ERROR_CODE_PHRASE = re.compile(r"\berror\s*code\b", re.IGNORECASE)

_ERROR_DISCUSSION_STATES = frozenset({
    ConversationState.PROBING,
    ConversationState.CLARIFYING,
    ConversationState.WAITING,
    ConversationState.READY_TO_SUBMIT,
})

_POSITIVE_ACK = re.compile(
    r"^(?:i\s*(?:understand|uderstand|undestand|understan)|understood|got\s*it|ok\b|okay|"
    r"i\s*(?:won'?t|will\s*not|get\s*it)|acknowledged|i\s*acknowledge)",
    re.IGNORECASE,
)
_POSITIVE_ACK_ANYWHERE = re.compile(
    r"(?:i\s*(?:understand|uderstand|undestand|understan)|understood|got\s*it|i\s*get\s*it)",
    re.IGNORECASE,
)
_NEGATIVE_ACK = re.compile(
    r"(?:i\s*(?:did|do)\s*not|i\s*dont|i\s*don't|no\s*,?\s*i|\bnot)\s*"
    r"(?:understand|uderstand|undestand|understan)",
    re.IGNORECASE,
)


@dataclass(slots=True, frozen=True)
class SecurityContext:
    """Contexto conversacional usado pelo scanner."""

    conversation_state: ConversationState = ConversationState.INIT
    last_bot_message: str | None = None
    last_expected_field: IntakeField | None = None
    error_text_known: bool = False


@dataclass(slots=True, frozen=True)
class SecurityDecision:
    """Veredicto do scanner para uma mensagem."""

    decision: SecurityVerdict
    pattern_type: PatternType = PatternType.NONE
    pattern_name: str | None = None
    message: str | None = None
    reason: str = ""

    @property
    def blocked(self) -> bool:
        return self.decision == SecurityVerdict.BLOCK

    def block_reply(self) -> str:
        """Aviso ao usuário com pedido de reconhecimento."""
        base = self.message or "For security reasons, please do not share sensitive information."
        return f"{base}\n\n{ACKNOWLEDGEMENT_PROMPT}"


class SensitiveDataScanner:
    """Classifica uma mensagem quanto a compartilhamento de dados sensíveis."""

    def scan(self, text: str, context: SecurityContext | None = None) -> SecurityDecision:
        """Retorna PASS, SAFE ou BLOCK. Nunca lança exceção para texto válido."""
        ctx = context or SecurityContext()
        normalized = (text or "").strip()

        for item in LITERAL_PATTERNS:
            if item.pattern.search(normalized):
                return self._block(PatternType.LITERAL, item, "literal_credential_pattern")

        screened = _ERROR_CODE_PHRASE.sub("error", normalized)
        for item in HIGH_RISK_PATTERNS:
            if item.pattern.search(screened):
                return self._block(PatternType.HIGH_RISK_INTENT, item, "credential_share_intent")

        share = next((p for p in GENERIC_SHARE_PATTERNS if p.pattern.search(normalized)), None)
        if share is None:
            return SecurityDecision(decision=SecurityVerdict.PASS, reason="no_match")

        if self._has_credential_keyword(normalized):
            return self._block(
                PatternType.CREDENTIAL_SHARE, share, "share_language_with_credential"
            )

        if self._indicates_safe_sharing(normalized, ctx):
            logger.info(
                "security_safe_context",
                extra={
                    "pattern_name": share.name,
                    "conversation_state": ctx.conversation_state.value,
                },
            )
            return SecurityDecision(
                decision=SecurityVerdict.SAFE,
                pattern_type=PatternType.SAFE_CONTEXT,
                pattern_name=share.name,
                reason="share_language_in_error_context",
            )

        return self._block(PatternType.AMBIGUOUS_SHARE, share, "ambiguous_share_language")

    @staticmethod
    def _has_credential_keyword(text: str) -> bool:
        return bool(_CREDENTIAL_KEYWORDS.search(_ERROR_CODE_PHRASE.sub("error", text)))

    @staticmethod
    def _indicates_safe_sharing(text: str, ctx: SecurityContext) -> bool:
        bot_message = ctx.last_bot_message or ""
        has_safe_keyword = bool(
            _SAFE_CONTEXT_KEYWORDS.search(text) or _SAFE_CONTEXT_KEYWORDS.search(bot_message)
        )
        if not has_safe_keyword:
            return False

        if _EXPLICIT_ERROR_MENTION.search(text):
            return True

        if ctx.conversation_state not in _ERROR_DISCUSSION_STATES:
            return False

        return (
            bool(_BOT_ASKED_ABOUT_ERRORS.search(bot_message))
            or ctx.last_expected_field == IntakeField.ERROR_TEXT
            or not ctx.error_text_known
        )

    @staticmethod
    def _block(
        pattern_type: PatternType, item: _SensitivePattern, reason: str
    ) -> SecurityDecision:
        logger.warning(
            "security_block",
            extra={"pattern_type": pattern_type.value, "pattern_name": item.name},
        )
        return SecurityDecision(
            decision=SecurityVerdict.BLOCK,
            pattern_type=pattern_type,
            pattern_name=item.name,
            message=item.message,
            reason=reason,
        )


def redact_sensitive(text: str) -> str:
    """Substitui padrões literais de credencial por [REDACTED]."""
    if not text:
        return text
    result = text
    for item in LITERAL_PATTERNS:
        result = item.pattern.sub(REDACTED, result)
    return result


def is_security_acknowledgement(text: str) -> bool:
    """True se o usuário reconheceu o aviso de segurança."""
    normalized = (text or "").strip().lower()
    if is_negative_acknowledgement(normalized):
        return False
    return bool(_POSITIVE_ACK.search(normalized) or _POSITIVE_ACK_ANYWHERE.search(normalized))


def is_negative_acknowledgement(text: str) -> bool:
    """True se o usuário disse explicitamente que não entendeu."""
    return bool(_NEGATIVE_ACK.search((text or "").strip().lower()))
