"""Debounced execution of controller-managed validators.

Each call for a field cancels the field's pending (not yet started) call and
its in-flight validation, then waits for a quiet window before running. Only
the last call received within the window executes; every earlier caller
resolves with ``CancelledValidationResult(reason="superseded")``.

Example:
    ```python
    debouncer = Debouncer(AsyncValidationController(), debounce_ms=300)

    # Keystroke-driven revalidation: only the last value is checked
    results = await asyncio.gather(
        debouncer.validate(unique_email, "a", context),
        debouncer.validate(unique_email, "a@b.com", context),
    )
    results[0].reason  # 'superseded'
    ```
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .controller import AsyncValidationController
from .policy import AsyncPolicy
from .registry import Validator
from .result import AsyncValidationResult, CancelledValidationResult, ValidationContext

logger = logging.getLogger(__name__)


@dataclass
class _PendingCall:
    handle: asyncio.TimerHandle
    ready: asyncio.Future
    superseded_by: str | None = None


class Debouncer:
    """Coalesces rapid calls per field into one most-recent-wins execution.

    Args:
        controller: Controller executing the validators
        debounce_ms: Default quiet window in milliseconds
    """

    def __init__(self, controller: AsyncValidationController, debounce_ms: int = 300):
        self._controller = controller
        self._debounce_ms = debounce_ms
        self._pending: dict[str, _PendingCall] = {}

    @property
    def controller(self) -> AsyncValidationController:
        return self._controller

    @property
    def debounce_ms(self) -> int:
        return self._debounce_ms

    async def validate(
        self,
        validator: Validator,
        value: Any,
        context: ValidationContext,
        policy: AsyncPolicy | dict[str, Any] | None = None,
        debounce_ms: int | None = None,
    ) -> AsyncValidationResult:
        """Run ``validator`` after the quiet window unless a newer call arrives."""
        field_path = context.field_path
        self._supersede(field_path, "superseded")
        self._controller.cancel_validation(field_path, reason="superseded")

        loop = asyncio.get_running_loop()
        ready = loop.create_future()
        delay = (self._debounce_ms if debounce_ms is None else debounce_ms) / 1000.0
        pending = _PendingCall(loop.call_later(delay, _release, ready), ready)
        self._pending[field_path] = pending

        try:
            outcome = await ready
        finally:
            pending.handle.cancel()
            if self._pending.get(field_path) is pending:
                del self._pending[field_path]

        if outcome is not None:
            return outcome
        # The timer fired but a newer call arrived before this one resumed
        if pending.superseded_by is not None:
            logger.debug("Debounced validation for %r %s after its window", field_path, pending.superseded_by)
            return CancelledValidationResult(reason=pending.superseded_by)
        return await self._controller.execute_validator(validator, value, context, policy)

    def _supersede(self, field_path: str, reason: str) -> bool:
        pending = self._pending.pop(field_path, None)
        if pending is None:
            return False
        pending.handle.cancel()
        pending.superseded_by = reason
        if not pending.ready.done():
            pending.ready.set_result(CancelledValidationResult(reason=reason))
        logger.debug("Debounced validation for %r %s", field_path, reason)
        return True

    def cancel(self, field_path: str) -> bool:
        """Cancel the pending call and the in-flight validation for a field.

        Returns:
            True if anything was cancelled
        """
        had_pending = self._supersede(field_path, "cancelled")
        had_active = self._controller.cancel_validation(field_path)
        return had_pending or had_active

    def cancel_all(self) -> int:
        """Cancel every pending call and in-flight validation; returns the pending count."""
        fields = list(self._pending)
        for field_path in fields:
            self._supersede(field_path, "cancelled")
        self._controller.cancel_all_validations()
        return len(fields)

    def pending_fields(self) -> list[str]:
        return list(self._pending)


def _release(ready: asyncio.Future) -> None:
    if not ready.done():
        ready.set_result(None)


__all__ = ["Debouncer"]
