"""Estados da conversa, tabela de transições e whitelist de ações.

- TRANSITIONS[(current_state, intent)] = next_state
- Combinações ausentes mantêm o estado atual (default seguro)
- Validação pura: sem side effects
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from helpdesk_intake.domain.enums import Action, Intent


class ConversationState(StrEnum):
    """8 estados canônicos de uma conversa de intake."""

    INIT = "INIT"
    """Conversa criada, nenhuma informação útil ainda."""

    PROBING = "PROBING"
    """Coletando campos do chamado."""

    CLARIFYING = "CLARIFYING"
    """Usuário pediu esclarecimento ou houve risco de segurança."""

    WAITING = "WAITING"
    """Usuário pediu pausa; trava até retomada explícita."""

    READY_TO_SUBMIT = "READY_TO_SUBMIT"
    """Campos completos; resumo exibido aguardando confirmação."""

    CONFIRMING_SUBMISSION = "CONFIRMING_SUBMISSION"
    """Transitório: confirmação recebida, gate em execução."""

    SUBMITTED = "SUBMITTED"
    """Chamado enviado; intake imutável."""

    BLOCKED_SECURITY = "BLOCKED_SECURITY"
    """Compartilhamento sensível detectado; aguarda reconhecimento."""


TERMINAL_STATES = frozenset({ConversationState.SUBMITTED})
TRANSIENT_STATES = frozenset({ConversationState.CONFIRMING_SUBMISSION})

# Estados em que o resumo está pendente de resposta sim/não
SUMMARY_PENDING_STATES = frozenset({
    ConversationState.READY_TO_SUBMIT,
    ConversationState.CONFIRMING_SUBMISSION,
})

S = ConversationState

TRANSITIONS: dict[tuple[ConversationState, Intent], ConversationState] = {
    # === INIT ===
    (S.INIT, Intent.PROVIDE_INFO): S.PROBING,
    (S.INIT, Intent.ADD_MORE_INFO): S.PROBING,
    (S.INIT, Intent.FRUSTRATION): S.PROBING,
    (S.INIT, Intent.ASK_QUESTION): S.CLARIFYING,
    (S.INIT, Intent.SECURITY_RISK): S.CLARIFYING,
    (S.INIT, Intent.IDLE): S.INIT,
    (S.INIT, Intent.OFF_TOPIC): S.INIT,
    (S.INIT, Intent.INTERRUPT_WAIT): S.WAITING,
    # === PROBING ===
    (S.PROBING, Intent.PROVIDE_INFO): S.PROBING,
    (S.PROBING, Intent.ADD_MORE_INFO): S.PROBING,
    (S.PROBING, Intent.FRUSTRATION): S.PROBING,
    (S.PROBING, Intent.OFF_TOPIC): S.PROBING,
    (S.PROBING, Intent.IDLE): S.PROBING,
    (S.PROBING, Intent.DENY_SUBMIT): S.PROBING,
    (S.PROBING, Intent.ASK_QUESTION): S.CLARIFYING,
    (S.PROBING, Intent.SECURITY_RISK): S.CLARIFYING,
    (S.PROBING, Intent.INTERRUPT_WAIT): S.WAITING,
    (S.PROBING, Intent.NO_MORE_INFO): S.READY_TO_SUBMIT,
    # === CLARIFYING ===
    (S.CLARIFYING, Intent.PROVIDE_INFO): S.PROBING,
    (S.CLARIFYING, Intent.ADD_MORE_INFO): S.PROBING,
    (S.CLARIFYING, Intent.ASK_QUESTION): S.CLARIFYING,
    (S.CLARIFYING, Intent.IDLE): S.CLARIFYING,
    (S.CLARIFYING, Intent.SECURITY_RISK): S.CLARIFYING,
    (S.CLARIFYING, Intent.INTERRUPT_WAIT): S.WAITING,
    (S.CLARIFYING, Intent.NO_MORE_INFO): S.READY_TO_SUBMIT,
    # === WAITING (só alcançável após retomada explícita) ===
    (S.WAITING, Intent.PROVIDE_INFO): S.PROBING,
    (S.WAITING, Intent.ADD_MORE_INFO): S.PROBING,
    (S.WAITING, Intent.CONFIRM_SUBMIT): S.READY_TO_SUBMIT,
    (S.WAITING, Intent.INTERRUPT_WAIT): S.WAITING,
    (S.WAITING, Intent.SECURITY_RISK): S.CLARIFYING,
    # === READY_TO_SUBMIT ===
    (S.READY_TO_SUBMIT, Intent.CONFIRM_SUBMIT): S.CONFIRMING_SUBMISSION,
    (S.READY_TO_SUBMIT, Intent.DENY_SUBMIT): S.PROBING,
    (S.READY_TO_SUBMIT, Intent.ADD_MORE_INFO): S.PROBING,
    (S.READY_TO_SUBMIT, Intent.ASK_QUESTION): S.CLARIFYING,
    (S.READY_TO_SUBMIT, Intent.SECURITY_RISK): S.CLARIFYING,
    (S.READY_TO_SUBMIT, Intent.INTERRUPT_WAIT): S.WAITING,
    # === CONFIRMING_SUBMISSION, SUBMITTED, BLOCKED_SECURITY: sem saídas ===
}


@dataclass(slots=True, frozen=True)
class StateBehavior:
    """Ações permitidas e proibidas em um estado."""

    allowed_actions: frozenset[Action]
    can_extract: bool
    can_ask: bool


_ALL_ACTIONS = frozenset(Action)

STATE_BEHAVIOR: dict[ConversationState, StateBehavior] = {
    S.INIT: StateBehavior(_ALL_ACTIONS - {Action.SUBMIT}, can_extract=True, can_ask=True),
    S.PROBING: StateBehavior(_ALL_ACTIONS, can_extract=True, can_ask=True),
    S.CLARIFYING: StateBehavior(_ALL_ACTIONS, can_extract=True, can_ask=True),
    S.WAITING: StateBehavior(
        frozenset({Action.WAIT, Action.ACKNOWLEDGE_ONLY}), can_extract=False, can_ask=False
    ),
    S.READY_TO_SUBMIT: StateBehavior(_ALL_ACTIONS, can_extract=True, can_ask=False),
    S.CONFIRMING_SUBMISSION: StateBehavior(
        frozenset({Action.SUBMIT}), can_extract=False, can_ask=False
    ),
    S.SUBMITTED: StateBehavior(frozenset(), can_extract=False, can_ask=False),
    S.BLOCKED_SECURITY: StateBehavior(
        frozenset({Action.REDIRECT_SECURITY}), can_extract=False, can_ask=False
    ),
}


def validate_transition(
    current_state: ConversationState, intent: Intent
) -> tuple[bool, ConversationState | None, str]:
    """Valida se uma transição existe na tabela.

    Retorna:
    - (True, next_state, ""): transição válida
    - (False, None, motivo): transição inexistente

    Nunca lança exceção; apenas valida.
    """
    if current_state in TERMINAL_STATES:
        return False, None, f"Terminal state {current_state} has no transitions"

    key = (current_state, intent)
    if key not in TRANSITIONS:
        return False, None, f"No transition from {current_state} on intent {intent}"

    return True, TRANSITIONS[key], ""


def next_state_for(current_state: ConversationState, intent: Intent) -> ConversationState:
    """Próximo estado pela tabela; combinações desconhecidas mantêm o estado."""
    valid, next_state, _ = validate_transition(current_state, intent)
    if not valid or next_state is None:
        return current_state
    return next_state
