"""Async validation controller: timeout, retry with backoff, cancellation.

The controller runs one validator (sync or async) under an ``AsyncPolicy``
and keeps at most one run in flight per field identifier. Starting a new run
for a field cancels the previous one, and a run that is no longer the
field's current run never reports its own outcome: it resolves as
superseded instead, even if its validator eventually settles.

Every outcome is returned, never raised: success, validator-reported
failure, timeout, exhausted retries and cancellation all come back as an
``AsyncValidationResult`` (``CancelledValidationResult`` for the last).

Example:
    ```python
    controller = AsyncValidationController(AsyncPolicy(timeout=5.0, max_retries=2))
    result = await controller.execute_validator(unique_email, "a@b.com", context)
    if result.cancelled:
        return  # a newer validation owns this field
    ```
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import dataclass, replace
from typing import Any

from .exceptions import NetworkErrorKind, NetworkValidationError, ValidationContractError
from .network import classify_error
from .policy import AsyncPolicy
from .registry import Validator
from .result import (
    AsyncValidationResult,
    CancelledValidationResult,
    ValidationContext,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between the controller and a validator.

    Validators performing I/O can check ``cancelled`` or await ``wait()``;
    the controller also cancels the task running the validator.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the token was tripped
        """
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False


class ValidationCancelled(Exception):
    """Raised inside the controller when a run's token is tripped."""

    def __init__(self, reason: str | None = None):
        super().__init__(reason or "cancelled")
        self.reason = reason or "cancelled"


@dataclass
class AsyncValidationState:
    """Book-keeping for the run currently in flight for one field."""

    validation_id: str
    field_path: str
    current_attempt: int
    start_time: float
    cancellation_token: CancellationToken

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time


async def invoke_validator(validator: Validator, value: Any, context: ValidationContext) -> ValidationResult:
    """Call a validator and await it if it returned an awaitable."""
    result = validator(value, context)
    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, ValidationResult):
        raise TypeError(
            f"Validator returned {type(result).__name__}, expected ValidationResult"
        )
    return result


class AsyncValidationController:
    """Executes validators with timeout, retry/backoff and single-flight per field.

    The table of in-flight runs is only touched between suspension points of
    a single event loop, so each register / cancel / release is atomic with
    respect to other validations of the same field.

    Args:
        policy: Default policy; per-call overrides are merged over it
    """

    def __init__(self, policy: AsyncPolicy | None = None):
        self._policy = policy or AsyncPolicy()
        self._active: dict[str, AsyncValidationState] = {}

    @property
    def policy(self) -> AsyncPolicy:
        return self._policy

    def update_policy(self, **overrides: Any) -> None:
        """Replace default policy settings."""
        self._policy = self._policy.merge(overrides)

    async def execute_validator(
        self,
        validator: Validator,
        value: Any,
        context: ValidationContext,
        policy: AsyncPolicy | dict[str, Any] | None = None,
    ) -> AsyncValidationResult:
        """Run ``validator`` under the policy as the field's current validation.

        Args:
            validator: ``(value, context) -> ValidationResult``, sync or async
            value: Value to validate
            context: Validation context; ``field_path`` identifies the run
            policy: Per-call policy or overrides

        Returns:
            The outcome with ``duration``, ``retry_attempts`` and ``validation_id``

        Raises:
            ValidationContractError: If no context is given
        """
        if context is None:
            raise ValidationContractError("Async validators require a validation context")

        policy = self._policy.merge(policy)
        field_path = context.field_path

        if policy.cancel_previous:
            self.cancel_validation(field_path, reason="superseded")

        state = AsyncValidationState(
            validation_id=str(uuid.uuid4()),
            field_path=field_path,
            current_attempt=0,
            start_time=time.monotonic(),
            cancellation_token=CancellationToken(),
        )
        self._active[field_path] = state
        logger.debug("Started validation %s for field %r", state.validation_id, field_path)

        try:
            return await self._run(validator, value, context, state, policy)
        finally:
            self._release(state)

    async def _run(
        self,
        validator: Validator,
        value: Any,
        context: ValidationContext,
        state: AsyncValidationState,
        policy: AsyncPolicy,
    ) -> AsyncValidationResult:
        token = state.cancellation_token
        attempt_context = replace(context, cancellation_token=token)
        last_fault: Exception | None = None

        for attempt in range(policy.max_retries + 1):
            state.current_attempt = attempt
            if token.cancelled:
                return self._cancelled(state)

            try:
                result = await self._race(validator, value, attempt_context, token, policy.timeout)
            except ValidationCancelled:
                return self._cancelled(state)
            except Exception as e:
                fault = classify_error(e) or e
                last_fault = fault
                retryable = isinstance(fault, NetworkValidationError) and fault.retryable

                if not retryable or attempt >= policy.max_retries:
                    logger.debug(
                        "Validation %s for %r failed terminally (attempt %d/%d): %s",
                        state.validation_id, state.field_path, attempt + 1, policy.max_retries + 1, fault,
                    )
                    return self._finish(state, self._fault_result(fault, context, state, policy))

                delay = policy.delay_for(attempt)
                if policy.on_retry:
                    policy.on_retry(attempt, delay, fault)
                logger.debug(
                    "Retry validation %s for %r (attempt %d/%d), delay=%.2fs: %s",
                    state.validation_id, state.field_path, attempt + 1, policy.max_retries + 1, delay, fault,
                )
                if not await token.sleep(delay):
                    return self._cancelled(state)
                continue

            # Validator-reported failures are final; only faults are retried
            return self._finish(state, result)

        # Unreachable: every iteration returns or continues
        raise last_fault or RuntimeError("Validation loop exited without an outcome")

    async def _race(
        self,
        validator: Validator,
        value: Any,
        context: ValidationContext,
        token: CancellationToken,
        timeout: float,
    ) -> ValidationResult:
        """Race the validator against the timeout and the cancellation token."""
        call = asyncio.ensure_future(invoke_validator(validator, value, context))
        cancel_wait = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {call, cancel_wait}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_wait.cancel()
            if not call.done():
                call.cancel()

        if call in done:
            return call.result()
        if token.cancelled:
            raise ValidationCancelled(token.reason)
        raise NetworkValidationError(
            f"Validation timed out after {timeout}s", NetworkErrorKind.TIMEOUT
        )

    def _fault_result(
        self,
        fault: Exception,
        context: ValidationContext,
        state: AsyncValidationState,
        policy: AsyncPolicy,
    ) -> AsyncValidationResult:
        if isinstance(fault, NetworkValidationError) and fault.kind is NetworkErrorKind.TIMEOUT:
            error = context.error("validationTimeout", {"timeout": policy.timeout})
            return AsyncValidationResult(errors=[error], timed_out=True)
        if isinstance(fault, NetworkValidationError):
            error = context.error(
                "networkError",
                {
                    "errorType": fault.kind.value,
                    "statusCode": fault.status_code,
                    "retryAttempts": state.current_attempt,
                },
            )
            return AsyncValidationResult(errors=[error])
        error = context.error(
            "validationError",
            {"error": str(fault), "retryAttempts": state.current_attempt},
        )
        return AsyncValidationResult(errors=[error])

    def _finish(self, state: AsyncValidationState, result: ValidationResult) -> AsyncValidationResult:
        """Stamp metadata, discarding outcomes of runs that are no longer current."""
        if state.cancellation_token.cancelled:
            return self._cancelled(state)
        if self._active.get(state.field_path) is not state:
            return self._cancelled(state, reason="superseded")

        if isinstance(result, AsyncValidationResult):
            outcome = result
        else:
            outcome = AsyncValidationResult.from_result(result)
        outcome.retry_attempts = state.current_attempt
        outcome.duration = state.elapsed
        outcome.validation_id = state.validation_id
        return outcome

    def _cancelled(self, state: AsyncValidationState, reason: str | None = None) -> CancelledValidationResult:
        reason = reason or state.cancellation_token.reason or "cancelled"
        logger.debug("Validation %s for %r %s", state.validation_id, state.field_path, reason)
        return CancelledValidationResult(
            reason=reason,
            retry_attempts=state.current_attempt,
            duration=state.elapsed,
            validation_id=state.validation_id,
        )

    def _release(self, state: AsyncValidationState) -> None:
        if self._active.get(state.field_path) is state:
            del self._active[state.field_path]

    def cancel_validation(self, field_path: str, reason: str = "cancelled") -> bool:
        """Cancel the in-flight validation for a field.

        Returns:
            True if a validation was in flight
        """
        state = self._active.pop(field_path, None)
        if state is None:
            return False
        state.cancellation_token.cancel(reason)
        return True

    def cancel_all_validations(self) -> int:
        """Cancel every in-flight validation; returns how many were cancelled."""
        states = list(self._active.values())
        self._active.clear()
        for state in states:
            state.cancellation_token.cancel()
        return len(states)

    def is_validating(self, field_path: str) -> bool:
        return field_path in self._active

    def get_active_validations(self) -> list[str]:
        return list(self._active)

    def get_validation_state(self, field_path: str) -> AsyncValidationState | None:
        return self._active.get(field_path)

    def is_current(self, field_path: str, validation_id: str) -> bool:
        """Whether ``validation_id`` is the field's current run."""
        state = self._active.get(field_path)
        return state is not None and state.validation_id == validation_id

    def get_cancellation_token(self, field_path: str) -> CancellationToken:
        """Token of the field's in-flight validation.

        Raises:
            ValidationContractError: If no validation is in flight for the field
        """
        state = self._active.get(field_path)
        if state is None:
            raise ValidationContractError(
                f"No validation in flight for field '{field_path}'",
                context={"field": field_path, "active": list(self._active)},
            )
        return state.cancellation_token


__all__ = [
    "CancellationToken",
    "ValidationCancelled",
    "AsyncValidationState",
    "AsyncValidationController",
    "invoke_validator",
]
