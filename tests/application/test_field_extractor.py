"""Testes do FieldExtractor (regras determinísticas e validação semântica)."""

from __future__ import annotations

import pytest

from helpdesk_intake.ai.capability_caller import CapabilityPolicy
from helpdesk_intake.application.field_extractor import (
    ExtractionRequest,
    FieldExtractor,
    extract_by_rules,
    find_systems,
    infer_category,
)
from helpdesk_intake.domain.enums import Category
from helpdesk_intake.domain.intake import FIELD_PRIORITY, NO_ERROR_PROVIDED, IntakeField

ALL_FIELDS = list(FIELD_PRIORITY)
NO_RETRY = CapabilityPolicy(max_retries=0, timeout_seconds=1.0)


class TestKeywordHelpers:
    def test_email_wins_over_password_for_outlook_login(self):
        assert infer_category("I can't log into Outlook") == Category.EMAIL

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("I forgot my password", Category.PASSWORD),
            ("the VPN drops every hour", Category.NETWORK),
            ("my printer is jammed", Category.HARDWARE),
            ("Excel crashes on startup", Category.SOFTWARE),
        ],
    )
    def test_infer_category(self, text, expected):
        assert infer_category(text) == expected

    def test_infer_category_unknown(self):
        assert infer_category("something weird happened") is None
        assert infer_category(None, "") is None

    def test_find_systems_is_canonical_and_unique(self):
        assert find_systems("outlook and TEAMS, then outlook again") == ["Outlook", "Teams"]


class TestExtractByRules:
    def test_single_message_with_everything(self):
        request = ExtractionRequest(
            message="I can't log into Outlook, it's urgent, error says 'invalid credentials'",
            requested_fields=ALL_FIELDS,
        )

        candidates = extract_by_rules(request)

        assert candidates[IntakeField.CATEGORY].value == "email"
        assert candidates[IntakeField.URGENCY].value == "high"
        assert candidates[IntakeField.AFFECTED_SYSTEM].value == "Outlook"
        assert candidates[IntakeField.ERROR_TEXT].value == "invalid credentials"
        assert candidates[IntakeField.PROBLEM].value.startswith("I can't log into Outlook")
        assert all(c.confidence >= 0.7 for c in candidates.values())

    def test_only_requested_fields(self):
        request = ExtractionRequest(
            message="Outlook is down and it's urgent",
            requested_fields=[IntakeField.URGENCY],
        )

        candidates = extract_by_rules(request)

        assert set(candidates) == {IntakeField.URGENCY}

    def test_no_error_sentinel(self):
        request = ExtractionRequest(
            message="there's no error, it just hangs",
            requested_fields=[IntakeField.ERROR_TEXT],
        )

        candidates = extract_by_rules(request)

        assert candidates[IntakeField.ERROR_TEXT].value == NO_ERROR_PROVIDED

    def test_bare_no_after_error_question(self):
        request = ExtractionRequest(
            message="no",
            requested_fields=[IntakeField.ERROR_TEXT],
            last_expected_field=IntakeField.ERROR_TEXT,
        )

        candidates = extract_by_rules(request)

        assert candidates[IntakeField.ERROR_TEXT].value == NO_ERROR_PROVIDED

    def test_bare_no_without_question_extracts_nothing(self):
        request = ExtractionRequest(message="no", requested_fields=ALL_FIELDS)

        assert extract_by_rules(request) == {}

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("it's not urgent, I have a workaround", "low"),
            ("I can't work at all", "blocked"),
            ("set priority to medium", "medium"),
        ],
    )
    def test_urgency_rules(self, message, expected):
        request = ExtractionRequest(message=message, requested_fields=[IntakeField.URGENCY])

        assert extract_by_rules(request)[IntakeField.URGENCY].value == expected

    def test_short_answer_to_system_question(self):
        request = ExtractionRequest(
            message="the payroll portal",
            requested_fields=[IntakeField.AFFECTED_SYSTEM],
            last_expected_field=IntakeField.AFFECTED_SYSTEM,
        )

        candidates = extract_by_rules(request)

        assert candidates[IntakeField.AFFECTED_SYSTEM].value == "the payroll portal"

    def test_problem_skips_short_answers_to_other_questions(self):
        request = ExtractionRequest(
            message="it is blocking me",
            requested_fields=[IntakeField.PROBLEM],
            last_expected_field=IntakeField.URGENCY,
        )

        assert extract_by_rules(request) == {}


class TestFieldExtractor:
    @pytest.mark.asyncio
    async def test_no_requested_fields(self):
        request = ExtractionRequest(message="hi", requested_fields=[])

        result = await FieldExtractor().extract(request)

        assert result.source == "none"
        assert result.candidates == {}

    @pytest.mark.asyncio
    async def test_semantic_values_are_validated(self, make_capability):
        capability = make_capability(
            extract_fields={
                "fields": {
                    "category": {"value": "Email", "confidence": 0.9},
                    "urgency": {"value": "super-urgent", "confidence": 0.9},
                    "affected_system": {"value": "Outlook", "confidence": 0.8},
                }
            }
        )
        extractor = FieldExtractor(capability, policy=NO_RETRY)

        result = await extractor.extract(
            ExtractionRequest(
                message="Outlook is broken",
                requested_fields=[IntakeField.CATEGORY, IntakeField.URGENCY],
            )
        )

        assert result.source == "semantic"
        assert result.candidates[IntakeField.CATEGORY].value == "email"
        # Enum inválido descartado; campo não solicitado ignorado
        assert IntakeField.URGENCY not in result.candidates
        assert IntakeField.AFFECTED_SYSTEM not in result.candidates

    @pytest.mark.asyncio
    async def test_capability_failure_uses_rules(self, make_capability):
        capability = make_capability(extract_fields=TimeoutError())
        extractor = FieldExtractor(capability, policy=NO_RETRY)

        result = await extractor.extract(
            ExtractionRequest(message="Teams keeps crashing", requested_fields=ALL_FIELDS)
        )

        assert result.source == "rules"
        assert result.candidates[IntakeField.AFFECTED_SYSTEM].value == "Teams"
