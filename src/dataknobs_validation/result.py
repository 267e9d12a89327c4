"""Validation result types with consistent, predictable behavior.

Every validator, the engine and the async controller return a
``ValidationResult`` (or one of its async variants). ``success`` is derived
from the error list, so a result can never claim success while carrying
errors.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .messages import default_resolver

if TYPE_CHECKING:
    from .controller import CancellationToken

MessageResolver = Callable[..., str]


@dataclass(frozen=True)
class ValidationError:
    """A single structured validation error.

    The ``code`` is for programmatic handling; ``message`` is rendered text
    produced by the message resolver (or a custom override from the schema).
    """

    field: str
    code: str
    message: str = ""
    params: dict[str, Any] = field(default_factory=dict)

    def with_message(self, message: str) -> ValidationError:
        """Return a copy carrying a different message."""
        return replace(self, message=message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"field": self.field, "code": self.code, "message": self.message}
        if self.params:
            data["params"] = dict(self.params)
        return data


# Warnings share the error shape but never affect success.
ValidationWarning = ValidationError


@dataclass
class ValidationResult:
    """Unified result object for all validation operations."""

    data: Any = None
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True exactly when no errors were recorded."""
        return not self.errors

    def __bool__(self) -> bool:
        """Allow 'if result:' usage to check validity."""
        return self.success

    @classmethod
    def ok(cls, data: Any = None, warnings: list[ValidationWarning] | None = None) -> ValidationResult:
        """Create a successful validation result.

        Args:
            data: The validated (possibly transformed) value
            warnings: Optional list of warnings

        Returns:
            Successful ValidationResult
        """
        return cls(data=data, errors=[], warnings=list(warnings or []))

    @classmethod
    def fail(
        cls,
        errors: list[ValidationError],
        warnings: list[ValidationWarning] | None = None,
    ) -> ValidationResult:
        """Create a failed validation result.

        Args:
            errors: Non-empty list of errors
            warnings: Optional list of warnings

        Returns:
            Failed ValidationResult
        """
        if not errors:
            raise ValueError("A failed result needs at least one error")
        return cls(data=None, errors=list(errors), warnings=list(warnings or []))

    @classmethod
    def error(
        cls,
        field_path: str,
        code: str,
        message: str = "",
        params: Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """Shorthand for a failure with a single error."""
        return cls.fail([ValidationError(field_path, code, message, dict(params or {}))])

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Combine results for composite validation.

        Args:
            other: Another ValidationResult to merge with this one

        Returns:
            New ValidationResult with combined state
        """
        errors = self.errors + other.errors
        return ValidationResult(
            data=None if errors else (other.data if other.data is not None else self.data),
            errors=errors,
            warnings=self.warnings + other.warnings,
        )

    def errors_for(self, field_path: str) -> list[ValidationError]:
        """Errors recorded against one field."""
        return [e for e in self.errors if e.field == field_path]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }
        if self.success:
            data["data"] = self.data
        return data


@dataclass
class AsyncValidationResult(ValidationResult):
    """Result of a controller-managed validation, with execution metadata.

    Attributes:
        timed_out: The final attempt lost its race against the timeout
        retry_attempts: Index of the last attempt made (0 when the first attempt settled)
        duration: Wall-clock seconds from start to outcome
        validation_id: Identifier of the run that produced this result
    """

    timed_out: bool = False
    retry_attempts: int = 0
    duration: float = 0.0
    validation_id: str | None = None

    @property
    def cancelled(self) -> bool:
        return False

    @classmethod
    def from_result(cls, result: ValidationResult, **meta: Any) -> AsyncValidationResult:
        return cls(
            data=result.data,
            errors=list(result.errors),
            warnings=list(result.warnings),
            **meta,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            cancelled=self.cancelled,
            timedOut=self.timed_out,
            retryAttempts=self.retry_attempts,
            duration=self.duration,
            validationId=self.validation_id,
        )
        return data


@dataclass
class CancelledValidationResult(AsyncValidationResult):
    """Outcome of a validation that was cancelled or superseded.

    This is not a failure: it carries no errors. ``success`` still reports
    False so a cancelled run is never mistaken for a pass.

    Attributes:
        reason: ``"cancelled"`` for explicit cancellation, ``"superseded"`` when
            a newer validation for the same field took over
    """

    reason: str = "cancelled"

    @property
    def success(self) -> bool:
        return False

    @property
    def cancelled(self) -> bool:
        return True


@dataclass
class ValidationContext:
    """Context passed to every validator invocation.

    ``form_data`` is shared by all fields of a form so validators can look at
    sibling values (e.g. "confirm password matches password").

    Attributes:
        form_data: Complete record being validated
        field_path: Field currently being validated ('' for form-level validators)
        is_submitting: Whether validation happens during submission
        message_resolver: ``(key, params) -> str`` lookup for user-facing text
        context_name: Optional name selecting context-specific messages
        cancellation_token: Token of the controller run executing this validator
    """

    form_data: dict[str, Any] = field(default_factory=dict)
    field_path: str = ""
    is_submitting: bool = False
    message_resolver: MessageResolver = default_resolver
    context_name: str | None = None
    cancellation_token: CancellationToken | None = None

    def for_field(self, field_path: str) -> ValidationContext:
        """Derive a context for one field, sharing ``form_data``."""
        return replace(self, field_path=field_path, cancellation_token=None)

    def message(self, key: str, params: Mapping[str, Any] | None = None) -> str:
        """Render the message for ``key``.

        When ``context_name`` is set the resolver is also given
        ``context=context_name``, so it must accept that keyword.
        """
        if self.context_name is not None:
            return self.message_resolver(key, params, context=self.context_name)
        return self.message_resolver(key, params)

    def error(
        self,
        code: str,
        params: Mapping[str, Any] | None = None,
        message_key: str | None = None,
    ) -> ValidationError:
        """Build an error for the current field with a resolved message."""
        params = dict(params or {})
        return ValidationError(
            field=self.field_path,
            code=code,
            message=self.message(message_key or code, params),
            params=params,
        )


__all__ = [
    "MessageResolver",
    "ValidationError",
    "ValidationWarning",
    "ValidationResult",
    "AsyncValidationResult",
    "CancelledValidationResult",
    "ValidationContext",
]
