"""Timeout and retry policy for asynchronous validators.

Example:
    ```python
    from dataknobs_validation.policy import AsyncPolicy

    policy = AsyncPolicy(timeout=8.0, max_retries=2, retry_delay=1.0)
    policy.delay_for(0)  # 1.0
    policy.delay_for(1)  # 2.0
    policy.delay_for(5)  # 8.0 (capped at max_retry_delay)
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class AsyncPolicy:
    """Configuration for controller-managed validation.

    All durations are in seconds.

    Attributes:
        timeout: Upper bound on a single attempt.
        max_retries: Retries after the first attempt (``max_retries + 1`` attempts total).
        retry_delay: Base delay before the first retry.
        exponential_backoff: Double the delay with each attempt when True,
            otherwise use ``retry_delay`` every time.
        max_retry_delay: Upper bound on any single delay.
        cancel_previous: Cancel an in-flight validation for the same field
            when a new one starts.
        on_retry: Hook called before each retry sleep with
            (attempt, delay, error).
    """

    timeout: float = 10.0
    max_retries: int = 3
    retry_delay: float = 1.0
    exponential_backoff: bool = True
    max_retry_delay: float = 8.0
    cancel_previous: bool = True

    on_retry: Callable[[int, float, Exception], None] | None = None

    _CAMEL = {
        "maxRetries": "max_retries",
        "retryDelay": "retry_delay",
        "exponentialBackoff": "exponential_backoff",
        "maxRetryDelay": "max_retry_delay",
        "cancelPrevious": "cancel_previous",
    }

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive", context={"timeout": self.timeout})
        if self.max_retries < 0:
            raise ConfigurationError(
                "max_retries cannot be negative", context={"max_retries": self.max_retries}
            )
        if self.retry_delay < 0 or self.max_retry_delay < 0:
            raise ConfigurationError(
                "retry delays cannot be negative",
                context={"retry_delay": self.retry_delay, "max_retry_delay": self.max_retry_delay},
            )

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the 0-based ``attempt`` failed.

        Args:
            attempt: Index of the attempt that just failed.

        Returns:
            Delay in seconds, capped at ``max_retry_delay``.
        """
        if not self.exponential_backoff:
            return self.retry_delay
        return min(self.retry_delay * (2 ** attempt), self.max_retry_delay)

    def merge(self, overrides: AsyncPolicy | Mapping[str, Any] | None) -> AsyncPolicy:
        """Return a policy with ``overrides`` applied.

        A mapping only overrides the keys it names; another policy replaces
        this one entirely.
        """
        if overrides is None:
            return self
        if isinstance(overrides, AsyncPolicy):
            return overrides
        return replace(self, **self._normalize(overrides))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AsyncPolicy:
        """Build a policy from snake_case or camelCase keys."""
        return cls(**cls._normalize(data))

    @classmethod
    def _normalize(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        known = {f.name for f in fields(cls)}
        result = {}
        for key, value in data.items():
            name = cls._CAMEL.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown policy setting: {key}", context={"known": sorted(known)})
            result[name] = value
        return result

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "exponential_backoff": self.exponential_backoff,
            "max_retry_delay": self.max_retry_delay,
            "cancel_previous": self.cancel_previous,
        }


DEFAULT_POLICY = AsyncPolicy()
