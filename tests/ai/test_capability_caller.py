"""Testes de call_capability: timeout, retry único e validação de schema."""

from __future__ import annotations

import asyncio

import pytest

from helpdesk_intake.ai.capability_caller import CapabilityPolicy, call_capability
from helpdesk_intake.ai.contracts import IntentClassificationResult
from helpdesk_intake.domain.enums import Intent
from helpdesk_intake.domain.errors import (
    CapabilityUnavailableError,
    MalformedCapabilityResponseError,
)


class Flaky:
    """Falha nas primeiras `failures` chamadas e depois responde."""

    def __init__(self, failures: int, response: dict) -> None:
        self.failures = failures
        self.response = response
        self.calls = 0

    async def __call__(self) -> dict:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("transient")
        return self.response


VALID = {"intent": "PROVIDE_INFO", "confidence": 0.8}


class TestCallCapability:
    @pytest.mark.asyncio
    async def test_valid_response(self):
        result = await call_capability("intent", Flaky(0, VALID), IntentClassificationResult)

        assert result.intent == Intent.PROVIDE_INFO

    @pytest.mark.asyncio
    async def test_single_retry_recovers(self):
        call = Flaky(1, VALID)

        result = await call_capability(
            "intent", call, IntentClassificationResult, CapabilityPolicy(max_retries=1)
        )

        assert result.confidence == 0.8
        assert call.calls == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retry(self):
        call = Flaky(5, VALID)

        with pytest.raises(CapabilityUnavailableError):
            await call_capability(
                "intent", call, IntentClassificationResult, CapabilityPolicy(max_retries=1)
            )
        assert call.calls == 2

    @pytest.mark.asyncio
    async def test_malformed_is_not_retried(self):
        call = Flaky(0, {"intent": "SOMETHING", "confidence": 2})

        with pytest.raises(MalformedCapabilityResponseError):
            await call_capability("intent", call, IntentClassificationResult)
        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self):
        async def slow() -> dict:
            await asyncio.sleep(1)
            return VALID

        with pytest.raises(CapabilityUnavailableError):
            await call_capability(
                "intent",
                slow,
                IntentClassificationResult,
                CapabilityPolicy(max_retries=0, timeout_seconds=0.01),
            )

    @pytest.mark.asyncio
    async def test_missing_capability(self):
        with pytest.raises(CapabilityUnavailableError):
            await call_capability("intent", None, IntentClassificationResult)
