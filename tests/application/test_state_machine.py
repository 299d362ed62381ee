"""Testes da StateMachine e da tabela de transições."""

from __future__ import annotations

import pytest

from helpdesk_intake.application.state_machine import StateMachine, TransitionContext
from helpdesk_intake.domain.conversation import (
    STATE_BEHAVIOR,
    ConversationState,
    next_state_for,
    validate_transition,
)
from helpdesk_intake.domain.enums import Action, Intent
from helpdesk_intake.domain.intake import FieldCheck, IntakeField

S = ConversationState
VALID = FieldCheck(valid=True)
MISSING = FieldCheck(valid=False, missing_field=IntakeField.URGENCY)


def decide(state, intent, check=MISSING, **kwargs):
    return StateMachine().decide(
        TransitionContext(current_state=state, intent=intent, field_check=check, **kwargs)
    )


class TestTransitionTable:
    def test_known_transition(self):
        valid, next_state, reason = validate_transition(S.INIT, Intent.PROVIDE_INFO)

        assert valid is True
        assert next_state == S.PROBING
        assert reason == ""

    def test_unknown_transition_keeps_state(self):
        assert next_state_for(S.CLARIFYING, Intent.DENY_SUBMIT) == S.CLARIFYING

    def test_terminal_state_has_no_transitions(self):
        valid, next_state, _ = validate_transition(S.SUBMITTED, Intent.PROVIDE_INFO)

        assert valid is False
        assert next_state is None

    def test_waiting_only_allows_waiting_actions(self):
        behavior = STATE_BEHAVIOR[S.WAITING]

        assert behavior.can_extract is False
        assert Action.SUBMIT not in behavior.allowed_actions


class TestHardRules:
    @pytest.mark.parametrize("state", [S.SUBMITTED, S.BLOCKED_SECURITY, S.WAITING])
    def test_locked_states_never_move(self, state):
        decision = decide(state, Intent.CONFIRM_SUBMIT, VALID)

        assert decision.next_state == state

    def test_confirm_with_valid_fields(self):
        decision = decide(S.READY_TO_SUBMIT, Intent.CONFIRM_SUBMIT, VALID)

        assert decision.next_state == S.CONFIRMING_SUBMISSION
        assert decision.rule == "confirm_with_valid_fields"

    def test_confirm_with_invalid_fields_goes_back_to_probing(self):
        decision = decide(S.READY_TO_SUBMIT, Intent.CONFIRM_SUBMIT, MISSING)

        assert decision.next_state == S.PROBING

    def test_deny_summary(self):
        decision = decide(S.READY_TO_SUBMIT, Intent.DENY_SUBMIT, VALID)

        assert decision.next_state == S.PROBING
        assert decision.rule == "summary_declined"

    def test_valid_fields_force_ready(self):
        decision = decide(S.PROBING, Intent.PROVIDE_INFO, VALID)

        assert decision.next_state == S.READY_TO_SUBMIT
        assert decision.rule == "fields_complete"

    def test_declined_summary_is_not_reshown(self):
        decision = decide(S.PROBING, Intent.PROVIDE_INFO, VALID, submission_declined=True)

        assert decision.next_state == S.PROBING

    def test_no_more_info_after_decline_shows_summary(self):
        decision = decide(S.PROBING, Intent.NO_MORE_INFO, VALID, submission_declined=True)

        assert decision.next_state == S.READY_TO_SUBMIT
        assert decision.rule == "no_more_info"

    def test_question_does_not_force_ready(self):
        decision = decide(S.PROBING, Intent.ASK_QUESTION, VALID)

        assert decision.next_state == S.CLARIFYING

    def test_add_more_from_ready(self):
        decision = decide(S.READY_TO_SUBMIT, Intent.ADD_MORE_INFO, VALID)

        assert decision.next_state == S.PROBING
        assert decision.rule == "add_more_requested"

    def test_no_more_info_with_missing_fields_is_guarded(self):
        decision = decide(S.PROBING, Intent.NO_MORE_INFO, MISSING)

        assert decision.next_state == S.PROBING
        assert decision.rule == "guard_incomplete_fields"

    def test_wait_request(self):
        assert decide(S.PROBING, Intent.INTERRUPT_WAIT).next_state == S.WAITING

    def test_suggestion_is_audited_not_adopted(self):
        decision = decide(
            S.PROBING, Intent.PROVIDE_INFO, MISSING, suggested_state=S.CONFIRMING_SUBMISSION
        )

        assert decision.next_state == S.PROBING
        assert decision.overrode_suggestion is True
