"""Testes das políticas de merge por campo."""

from __future__ import annotations

from helpdesk_intake.application.field_merge import (
    FieldMergeEngine,
    MergeAction,
    MergeContext,
)
from helpdesk_intake.domain.conversation import ConversationState
from helpdesk_intake.domain.enums import Category, Urgency
from helpdesk_intake.domain.intake import (
    NO_ERROR_PROVIDED,
    FieldCandidate,
    IntakeField,
    IntakeFields,
)

F = IntakeField


def cand(value: str, confidence: float = 0.8) -> FieldCandidate:
    return FieldCandidate(value=value, confidence=confidence)


def decision_for(result, name: IntakeField):
    return next(d for d in result.decisions if d.field == name)


class TestMergeBasics:
    def test_sets_missing_fields(self):
        engine = FieldMergeEngine()

        result = engine.merge(
            IntakeFields(),
            {},
            {F.URGENCY: cand("high"), F.AFFECTED_SYSTEM: cand("Outlook")},
            MergeContext(message="Outlook, urgent"),
        )

        assert result.intake.urgency == Urgency.HIGH
        assert result.intake.affected_system == "Outlook"
        assert decision_for(result, F.URGENCY).action == MergeAction.SET
        assert {F.URGENCY, F.AFFECTED_SYSTEM} <= result.changed_fields

    def test_does_not_mutate_inputs(self):
        engine = FieldMergeEngine()
        intake = IntakeFields(problem="VPN drops")
        confidences = {F.PROBLEM: 0.8}

        engine.merge(intake, confidences, {F.URGENCY: cand("low")}, MergeContext())

        assert intake.urgency is None
        assert confidences == {F.PROBLEM: 0.8}

    def test_same_value_keeps_max_confidence(self):
        engine = FieldMergeEngine()

        result = engine.merge(
            IntakeFields(affected_system="Outlook"),
            {F.AFFECTED_SYSTEM: 0.7},
            {F.AFFECTED_SYSTEM: cand("outlook", 0.9)},
            MergeContext(),
        )

        assert result.intake.affected_system == "Outlook"
        assert result.confidences[F.AFFECTED_SYSTEM] == 0.9
        assert F.AFFECTED_SYSTEM not in result.changed_fields

    def test_submitted_session_rejects_everything(self):
        engine = FieldMergeEngine()
        intake = IntakeFields(problem="Printer jam", urgency=Urgency.LOW)

        result = engine.merge(
            intake,
            {F.PROBLEM: 0.9, F.URGENCY: 0.9},
            {F.URGENCY: cand("high")},
            MergeContext(conversation_state=ConversationState.SUBMITTED),
        )

        assert result.intake.urgency == Urgency.LOW
        assert result.changed_fields == set()
        assert decision_for(result, F.URGENCY).reason == "session_submitted"

    def test_invalid_enum_rejected(self):
        engine = FieldMergeEngine()

        result = engine.merge(IntakeFields(), {}, {F.URGENCY: cand("whenever")}, MergeContext())

        assert result.intake.urgency is None
        assert decision_for(result, F.URGENCY).action == MergeAction.REJECT


class TestErrorTextPolicy:
    def test_real_error_replaces_sentinel(self):
        result = FieldMergeEngine().merge(
            IntakeFields(error_text=NO_ERROR_PROVIDED),
            {F.ERROR_TEXT: 0.9},
            {F.ERROR_TEXT: cand("0x800CCC0E", 0.85)},
            MergeContext(),
        )

        assert result.intake.error_text == "0x800CCC0E"
        assert decision_for(result, F.ERROR_TEXT).reason == "real_error_replaces_sentinel"

    def test_sentinel_never_replaces_real_error(self):
        result = FieldMergeEngine().merge(
            IntakeFields(error_text="invalid credentials"),
            {F.ERROR_TEXT: 0.85},
            {F.ERROR_TEXT: cand(NO_ERROR_PROVIDED, 0.9)},
            MergeContext(),
        )

        assert result.intake.error_text == "invalid credentials"

    def test_correction_replaces(self):
        result = FieldMergeEngine().merge(
            IntakeFields(error_text="invalid credentials"),
            {F.ERROR_TEXT: 0.85},
            {F.ERROR_TEXT: cand("account locked", 0.8)},
            MergeContext(is_correction=True),
        )

        assert result.intake.error_text == "account locked"

    def test_shorter_error_does_not_replace(self):
        result = FieldMergeEngine().merge(
            IntakeFields(error_text="The server is not responding (0x800CCC0E)"),
            {F.ERROR_TEXT: 0.85},
            {F.ERROR_TEXT: cand("timeout", 0.85)},
            MergeContext(),
        )

        assert result.intake.error_text == "The server is not responding (0x800CCC0E)"


class TestProblemPolicy:
    def test_distinct_detail_is_appended(self):
        result = FieldMergeEngine().merge(
            IntakeFields(problem="Outlook won't open"),
            {F.PROBLEM: 0.75},
            {F.PROBLEM: cand("It started after the Windows update", 0.75)},
            MergeContext(),
        )

        assert result.intake.problem == "Outlook won't open. It started after the Windows update"
        assert decision_for(result, F.PROBLEM).action == MergeAction.APPEND

    def test_contained_text_is_kept(self):
        result = FieldMergeEngine().merge(
            IntakeFields(problem="Outlook won't open since this morning"),
            {F.PROBLEM: 0.8},
            {F.PROBLEM: cand("Outlook won't open", 0.75)},
            MergeContext(),
        )

        assert result.intake.problem == "Outlook won't open since this morning"

    def test_correction_of_other_field_keeps_problem(self):
        result = FieldMergeEngine().merge(
            IntakeFields(
                problem="Outlook won't open", category=Category.EMAIL, urgency=Urgency.HIGH
            ),
            {F.PROBLEM: 0.75, F.CATEGORY: 0.8, F.URGENCY: 0.75},
            {F.PROBLEM: cand("actually it's low urgency", 0.75), F.URGENCY: cand("low", 0.75)},
            MergeContext(is_correction=True, message="actually it's low urgency"),
        )

        assert result.intake.problem == "Outlook won't open"
        assert result.intake.urgency == Urgency.LOW
        assert decision_for(result, F.PROBLEM).reason == "correction_targets_other_field"
        assert result.changed_fields == {F.URGENCY}

    def test_correction_naming_the_problem_replaces(self):
        message = "actually it's Teams, the problem is that it crashes on launch"
        result = FieldMergeEngine().merge(
            IntakeFields(problem="Outlook won't open", affected_system="Outlook"),
            {F.PROBLEM: 0.75, F.AFFECTED_SYSTEM: 0.8},
            {F.PROBLEM: cand(message, 0.75), F.AFFECTED_SYSTEM: cand("Teams", 0.8)},
            MergeContext(is_correction=True, message=message),
        )

        assert result.intake.problem == message
        assert result.intake.affected_system == "Teams"

    def test_plain_correction_replaces_problem(self):
        result = FieldMergeEngine().merge(
            IntakeFields(problem="Outlook won't open"),
            {F.PROBLEM: 0.75},
            {F.PROBLEM: cand("Outlook opens but freezes on sync", 0.75)},
            MergeContext(is_correction=True, message="actually it's freezing on sync"),
        )

        assert result.intake.problem == "Outlook opens but freezes on sync"
        assert decision_for(result, F.PROBLEM).reason == "explicit_correction"


class TestCategoryPolicy:
    def test_locked_category_survives_weak_candidate(self):
        result = FieldMergeEngine(category_lock_confidence=0.6).merge(
            IntakeFields(category=Category.EMAIL),
            {F.CATEGORY: 0.8},
            {F.CATEGORY: cand("software", 0.8)},
            MergeContext(),
        )

        assert result.intake.category == Category.EMAIL
        assert decision_for(result, F.CATEGORY).reason == "category_locked"

    def test_correction_changes_locked_category(self):
        result = FieldMergeEngine().merge(
            IntakeFields(category=Category.EMAIL),
            {F.CATEGORY: 0.8},
            {F.CATEGORY: cand("network", 0.8)},
            MergeContext(is_correction=True),
        )

        assert result.intake.category == Category.NETWORK

    def test_other_is_upgraded(self):
        result = FieldMergeEngine().merge(
            IntakeFields(category=Category.OTHER),
            {F.CATEGORY: 0.9},
            {F.CATEGORY: cand("hardware", 0.7)},
            MergeContext(),
        )

        assert result.intake.category == Category.HARDWARE

    def test_keyword_heuristic_fills_category(self):
        result = FieldMergeEngine().merge(
            IntakeFields(),
            {},
            {F.PROBLEM: cand("The VPN disconnects every few minutes", 0.75)},
            MergeContext(message="The VPN disconnects every few minutes"),
        )

        assert result.intake.category == Category.NETWORK
        assert result.confidences[F.CATEGORY] == 0.75
        assert decision_for(result, F.CATEGORY).reason == "keyword_heuristic"


class TestSystemAndUrgencyPolicy:
    def test_distinct_system_is_appended(self):
        result = FieldMergeEngine().merge(
            IntakeFields(affected_system="Outlook"),
            {F.AFFECTED_SYSTEM: 0.8},
            {F.AFFECTED_SYSTEM: cand("Teams", 0.8)},
            MergeContext(message="Teams too"),
        )

        assert result.intake.affected_system == "Outlook, Teams"

    def test_contradiction_replaces_system(self):
        result = FieldMergeEngine().merge(
            IntakeFields(affected_system="Outlook"),
            {F.AFFECTED_SYSTEM: 0.8},
            {F.AFFECTED_SYSTEM: cand("Teams", 0.8)},
            MergeContext(message="it's not Outlook, it's Teams"),
        )

        assert result.intake.affected_system == "Teams"

    def test_urgency_kept_without_signal(self):
        result = FieldMergeEngine().merge(
            IntakeFields(urgency=Urgency.HIGH),
            {F.URGENCY: 0.75},
            {F.URGENCY: cand("medium", 0.75)},
            MergeContext(message="it's moderate annoying"),
        )

        assert result.intake.urgency == Urgency.HIGH
        assert decision_for(result, F.URGENCY).value == Urgency.HIGH

    def test_urgency_answer_to_question_replaces(self):
        result = FieldMergeEngine().merge(
            IntakeFields(urgency=Urgency.HIGH),
            {F.URGENCY: 0.75},
            {F.URGENCY: cand("low", 0.85)},
            MergeContext(expected_field=F.URGENCY, message="low"),
        )

        assert result.intake.urgency == Urgency.LOW

    def test_explicit_urgency_setting_replaces(self):
        result = FieldMergeEngine().merge(
            IntakeFields(urgency=Urgency.LOW),
            {F.URGENCY: 0.9},
            {F.URGENCY: cand("blocked", 0.9)},
            MergeContext(message="make it blocked please"),
        )

        assert result.intake.urgency == Urgency.BLOCKED
