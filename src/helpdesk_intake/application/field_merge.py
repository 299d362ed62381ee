"""Motor de merge de campos: política específica por campo.

Regras:
- Nunca muta os argumentos; devolve novo intake e novo mapa de confiança
- Toda decisão carrega um motivo (observabilidade e testes)
- Sessão SUBMITTED rejeita qualquer candidato
- Categoria com confiança >= limiar e diferente de "other" só muda com
  correção explícita ou confiança materialmente maior
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from helpdesk_intake.application.field_extractor import URGENCY_SETTING_PATTERN, infer_category
from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import Category, Urgency
from helpdesk_intake.domain.intake import (
    FIELD_PRIORITY,
    NO_ERROR_PROVIDED,
    FieldCandidate,
    IntakeField,
    IntakeFields,
)
from helpdesk_intake.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

MAX_PROBLEM_CHARS = 1000
HEURISTIC_CATEGORY_CONFIDENCE = 0.75

_CONTRADICTION = re.compile(r"\b(it'?s\s+not|not\s+(the|my)|instead\s+of|rather\s+than)\b")
# Correção que nomeia o problema ("actually the issue is...")
_PROBLEM_MARKER = re.compile(r"\b(problem|issue)\s+(is|was)\b")


class MergeAction(StrEnum):
    SET = "SET"
    REPLACE = "REPLACE"
    APPEND = "APPEND"
    KEEP = "KEEP"
    REJECT = "REJECT"


CHANGING_ACTIONS = frozenset({MergeAction.SET, MergeAction.REPLACE, MergeAction.APPEND})


@dataclass(slots=True, frozen=True)
class MergeDecision:
    """Decisão explicável para um único campo."""

    field: IntakeField
    action: MergeAction
    previous: Any
    value: Any
    confidence: float
    reason: str

    @property
    def changed(self) -> bool:
        return self.action in CHANGING_ACTIONS


@dataclass(slots=True)
class MergeContext:
    """Sinais do turno que alteram as políticas."""

    is_correction: bool = False
    resumed_from_wait: bool = False
    wants_more: bool = False
    expected_field: IntakeField | None = None
    message: str = ""
    conversation_state: ConversationState = ConversationState.PROBING


@dataclass(slots=True)
class MergeResult:
    intake: IntakeFields
    confidences: dict[IntakeField, float]
    decisions: list[MergeDecision] = field(default_factory=list)
    changed_fields: set[IntakeField] = field(default_factory=set)


def _same(a: Any, b: Any) -> bool:
    return str(a).strip().lower() == str(b).strip().lower()


def _split_systems(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class FieldMergeEngine:
    """Aplica a política de merge de cada campo aos candidatos extraídos."""

    def __init__(self, *, category_lock_confidence: float = 0.6) -> None:
        self._lock = category_lock_confidence

    def merge(
        self,
        intake: IntakeFields,
        confidences: dict[IntakeField, float],
        candidates: dict[IntakeField, FieldCandidate],
        context: MergeContext,
    ) -> MergeResult:
        merged = intake.model_copy()
        merged_conf = dict(confidences)
        result = MergeResult(intake=merged, confidences=merged_conf)

        if context.conversation_state == ConversationState.SUBMITTED:
            for name, candidate in candidates.items():
                result.decisions.append(
                    MergeDecision(
                        name,
                        MergeAction.REJECT,
                        intake.get(name),
                        candidate.value,
                        candidate.confidence,
                        "session_submitted",
                    )
                )
            self._log(result)
            return result

        redirected = self._correction_targets_other_field(intake, candidates, context)

        for name in FIELD_PRIORITY:
            candidate = candidates.get(name)
            if candidate is None:
                continue
            if name == IntakeField.PROBLEM and redirected and merged.is_set(name):
                decision = MergeDecision(
                    name,
                    MergeAction.KEEP,
                    merged.problem,
                    merged.problem,
                    merged_conf.get(name, 0.0),
                    "correction_targets_other_field",
                )
            else:
                decision = self._decide(
                    name, merged.get(name), merged_conf.get(name, 0.0), candidate, context
                )
            self._apply(result, decision)

        heuristic = self._category_heuristic(result.intake, result.confidences, context)
        if heuristic is not None:
            self._apply(result, heuristic)

        self._log(result)
        return result

    @staticmethod
    def _correction_targets_other_field(
        intake: IntakeFields,
        candidates: dict[IntakeField, FieldCandidate],
        context: MergeContext,
    ) -> bool:
        """True se a correção do turno muda outro campo e não fala do problema.

        Nesse caso a mensagem inteira não é uma nova descrição do problema
        ("actually it's low urgency").
        """
        if not context.is_correction or _PROBLEM_MARKER.search(context.message.lower()):
            return False
        return any(
            name != IntakeField.PROBLEM and not _same(intake.get(name), candidate.value)
            for name, candidate in candidates.items()
        )

    # === Políticas por campo ===

    def _decide(
        self,
        name: IntakeField,
        previous: Any,
        previous_conf: float,
        candidate: FieldCandidate,
        context: MergeContext,
    ) -> MergeDecision:
        value = candidate.value
        conf = candidate.confidence

        if name == IntakeField.CATEGORY:
            try:
                value = Category(value.lower())
            except ValueError:
                return MergeDecision(
                    name, MergeAction.REJECT, previous, value, conf, "invalid_enum_value"
                )
        elif name == IntakeField.URGENCY:
            try:
                value = Urgency(value.lower())
            except ValueError:
                return MergeDecision(
                    name, MergeAction.REJECT, previous, value, conf, "invalid_enum_value"
                )

        if previous is None or previous == "":
            return MergeDecision(name, MergeAction.SET, previous, value, conf, "field_missing")

        def decide(
            action: MergeAction, reason: str, *, new_value: Any = value, new_conf: float = conf
        ):
            return MergeDecision(name, action, previous, new_value, new_conf, reason)

        if _same(previous, value):
            return decide(
                MergeAction.KEEP,
                "same_value",
                new_value=previous,
                new_conf=max(previous_conf, conf),
            )

        match name:
            case IntakeField.ERROR_TEXT:
                return self._merge_error_text(previous, previous_conf, value, conf, context, decide)
            case IntakeField.PROBLEM:
                return self._merge_problem(previous, previous_conf, value, conf, context, decide)
            case IntakeField.CATEGORY:
                return self._merge_category(previous, previous_conf, value, conf, context, decide)
            case IntakeField.AFFECTED_SYSTEM:
                return self._merge_system(previous, previous_conf, value, conf, context, decide)
            case IntakeField.URGENCY:
                return self._merge_urgency(previous, previous_conf, conf, context, decide)

    @staticmethod
    def _merge_error_text(previous, previous_conf, value, conf, context, decide) -> MergeDecision:
        if context.is_correction:
            return decide(MergeAction.REPLACE, "explicit_correction")
        if context.resumed_from_wait:
            return decide(MergeAction.REPLACE, "resumed_from_wait")
        if previous == NO_ERROR_PROVIDED:
            return decide(MergeAction.REPLACE, "real_error_replaces_sentinel")
        if value == NO_ERROR_PROVIDED:
            return decide(
                MergeAction.KEEP,
                "sentinel_does_not_replace_error",
                new_value=previous,
                new_conf=previous_conf,
            )
        if len(value) > len(previous) and conf >= previous_conf - 0.2:
            return decide(MergeAction.REPLACE, "more_detailed")
        return decide(
            MergeAction.KEEP, "existing_preferred", new_value=previous, new_conf=previous_conf
        )

    @staticmethod
    def _merge_problem(previous, previous_conf, value, conf, context, decide) -> MergeDecision:
        if context.is_correction:
            return decide(MergeAction.REPLACE, "explicit_correction")

        old_l, new_l = previous.lower(), value.lower()
        if new_l in old_l or old_l in new_l:
            if conf > previous_conf and len(value) > len(previous):
                return decide(MergeAction.REPLACE, "higher_confidence_and_longer")
            return decide(
                MergeAction.KEEP, "existing_covers_new", new_value=previous, new_conf=previous_conf
            )

        if len(value) > 10:
            combined = f"{previous.rstrip(' .')}. {value}"[:MAX_PROBLEM_CHARS]
            return decide(
                MergeAction.APPEND,
                "semantic_merge",
                new_value=combined,
                new_conf=max(previous_conf, conf * 0.9),
            )
        return decide(
            MergeAction.KEEP, "too_short_to_merge", new_value=previous, new_conf=previous_conf
        )

    def _merge_category(
        self, previous, previous_conf, value, conf, context, decide
    ) -> MergeDecision:
        if context.is_correction:
            return decide(MergeAction.REPLACE, "explicit_correction")

        if previous_conf < self._lock or previous == Category.OTHER:
            if value != Category.OTHER or conf >= previous_conf + 0.2:
                return decide(MergeAction.REPLACE, "upgrade_low_confidence")
            return decide(
                MergeAction.KEEP, "other_not_better", new_value=previous, new_conf=previous_conf
            )

        if value != Category.OTHER and conf >= previous_conf + 0.15:
            return decide(MergeAction.REPLACE, "materially_higher_confidence")
        return decide(
            MergeAction.KEEP, "category_locked", new_value=previous, new_conf=previous_conf
        )

    @staticmethod
    def _merge_system(previous, previous_conf, value, conf, context, decide) -> MergeDecision:
        if context.is_correction or _CONTRADICTION.search(context.message.lower()):
            return decide(MergeAction.REPLACE, "contradiction")

        known = _split_systems(previous)
        known_lower = {s.lower() for s in known}
        additions = [s for s in _split_systems(value) if s.lower() not in known_lower]
        if not additions:
            return decide(
                MergeAction.KEEP,
                "system_already_known",
                new_value=previous,
                new_conf=max(previous_conf, conf),
            )
        return decide(
            MergeAction.APPEND,
            "distinct_system",
            new_value=", ".join([*known, *additions]),
            new_conf=max(previous_conf, conf),
        )

    @staticmethod
    def _merge_urgency(previous, previous_conf, conf, context, decide) -> MergeDecision:
        if context.is_correction:
            return decide(MergeAction.REPLACE, "explicit_correction")
        if URGENCY_SETTING_PATTERN.search(context.message.lower()):
            return decide(MergeAction.REPLACE, "explicit_urgency")
        if context.expected_field == IntakeField.URGENCY:
            return decide(MergeAction.REPLACE, "answer_to_question")
        if context.resumed_from_wait and conf >= 0.7:
            return decide(MergeAction.REPLACE, "resumed_from_wait")
        if conf >= previous_conf + 0.2:
            return decide(MergeAction.REPLACE, "materially_higher_confidence")
        return decide(
            MergeAction.KEEP, "existing_preferred", new_value=previous, new_conf=previous_conf
        )

    # === Heurística de categoria pós-merge ===

    def _category_heuristic(
        self,
        intake: IntakeFields,
        confidences: dict[IntakeField, float],
        context: MergeContext,
    ) -> MergeDecision | None:
        current = intake.category
        current_conf = confidences.get(IntakeField.CATEGORY, 0.0)
        if current is not None and current != Category.OTHER and current_conf >= self._lock:
            return None

        inferred = infer_category(intake.problem, intake.affected_system, context.message)
        if inferred is None:
            return None

        if current == inferred:
            if current_conf >= HEURISTIC_CATEGORY_CONFIDENCE:
                return None
            return MergeDecision(
                IntakeField.CATEGORY,
                MergeAction.REPLACE,
                current,
                inferred,
                HEURISTIC_CATEGORY_CONFIDENCE,
                "keyword_heuristic_confirms",
            )

        action = MergeAction.SET if current is None else MergeAction.REPLACE
        return MergeDecision(
            IntakeField.CATEGORY,
            action,
            current,
            inferred,
            HEURISTIC_CATEGORY_CONFIDENCE,
            "keyword_heuristic",
        )

    # === Aplicação ===

    @staticmethod
    def _apply(result: MergeResult, decision: MergeDecision) -> None:
        result.decisions.append(decision)
        if decision.action == MergeAction.REJECT:
            return
        if decision.changed:
            setattr(result.intake, decision.field.value, decision.value)
            result.changed_fields.add(decision.field)
        result.confidences[decision.field] = decision.confidence

    @staticmethod
    def _log(result: MergeResult) -> None:
        for decision in result.decisions:
            logger.debug(
                "field_merge_decision",
                extra={
                    "field": decision.field.value,
                    "action": decision.action.value,
                    "reason": decision.reason,
                    "confidence": round(decision.confidence, 2),
                },
            )
