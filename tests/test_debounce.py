"""Tests for the debounce layer."""

import asyncio
import time

import pytest

from dataknobs_validation.controller import AsyncValidationController
from dataknobs_validation.debounce import Debouncer
from dataknobs_validation.result import CancelledValidationResult, ValidationResult


@pytest.fixture
def debouncer(controller):
    return Debouncer(controller, debounce_ms=20)


@pytest.fixture
def recorder():
    """Validator recording every value it actually validates."""
    calls = []

    async def validate(value, context):
        calls.append(value)
        return ValidationResult.ok(value)

    validate.calls = calls
    return validate


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_only_last_call_runs(self, debouncer, recorder, make_context):
        results = await asyncio.gather(
            debouncer.validate(recorder, "a", make_context()),
            debouncer.validate(recorder, "ab", make_context()),
            debouncer.validate(recorder, "abc", make_context()),
        )

        assert recorder.calls == ["abc"]
        assert isinstance(results[0], CancelledValidationResult)
        assert results[0].reason == "superseded"
        assert results[1].reason == "superseded"
        assert results[2].success
        assert results[2].data == "abc"
        assert debouncer.pending_fields() == []

    @pytest.mark.asyncio
    async def test_call_superseded_after_its_window_does_not_run(self, debouncer, recorder, make_context):
        old = asyncio.create_task(debouncer.validate(recorder, "old", make_context(), debounce_ms=10))
        await asyncio.sleep(0)
        # Block the loop so the timer is already due when it next runs
        time.sleep(0.05)
        await asyncio.sleep(0)
        new = asyncio.create_task(debouncer.validate(recorder, "new", make_context(), debounce_ms=10))

        old_result, new_result = await asyncio.gather(old, new)

        assert recorder.calls == ["new"]
        assert isinstance(old_result, CancelledValidationResult)
        assert old_result.reason == "superseded"
        assert new_result.data == "new"

    @pytest.mark.asyncio
    async def test_waits_for_quiet_window(self, debouncer, recorder, make_context):
        start = time.monotonic()
        result = await debouncer.validate(recorder, "a", make_context())

        assert result.success
        assert time.monotonic() - start >= 0.015

    @pytest.mark.asyncio
    async def test_per_call_window_override(self, debouncer, recorder, make_context):
        start = time.monotonic()
        await debouncer.validate(recorder, "a", make_context(), debounce_ms=0)

        assert recorder.calls == ["a"]
        assert time.monotonic() - start < 0.5

    @pytest.mark.asyncio
    async def test_cancel_pending_call(self, debouncer, recorder, make_context):
        task = asyncio.create_task(debouncer.validate(recorder, "a", make_context(), debounce_ms=1000))
        await asyncio.sleep(0)

        assert debouncer.pending_fields() == ["email"]
        assert debouncer.cancel("email") is True

        result = await task
        assert result.cancelled
        assert result.reason == "cancelled"
        assert recorder.calls == []
        assert debouncer.pending_fields() == []

    @pytest.mark.asyncio
    async def test_new_call_cancels_in_flight_validation(self, debouncer, make_context):
        started = asyncio.Event()

        async def slow(value, context):
            started.set()
            await asyncio.sleep(10)
            return ValidationResult.ok(value)

        first = asyncio.create_task(debouncer.validate(slow, "a", make_context(), debounce_ms=0))
        await started.wait()

        second = await debouncer.validate(lambda v, c: ValidationResult.ok(v), "b", make_context())
        first_result = await first

        assert second.data == "b"
        assert first_result.cancelled
        assert first_result.reason == "superseded"

    @pytest.mark.asyncio
    async def test_fields_are_independent(self, debouncer, recorder, make_context):
        email, username = await asyncio.gather(
            debouncer.validate(recorder, "a@b.com", make_context("email")),
            debouncer.validate(recorder, "bob", make_context("username")),
        )

        assert email.data == "a@b.com"
        assert username.data == "bob"
        assert sorted(recorder.calls) == ["a@b.com", "bob"]

    @pytest.mark.asyncio
    async def test_cancel_all(self, recorder, make_context):
        debouncer = Debouncer(AsyncValidationController(), debounce_ms=1000)
        tasks = [
            asyncio.create_task(debouncer.validate(recorder, "x", make_context(name)))
            for name in ("email", "username")
        ]
        await asyncio.sleep(0)

        assert debouncer.cancel_all() == 2
        results = await asyncio.gather(*tasks)
        assert all(r.cancelled for r in results)
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_external_cancellation_clears_pending(self, debouncer, recorder, make_context):
        task = asyncio.create_task(debouncer.validate(recorder, "a", make_context(), debounce_ms=1000))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert debouncer.pending_fields() == []
