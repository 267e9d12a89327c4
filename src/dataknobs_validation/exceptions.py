"""Exception hierarchy for the validation package.

Validator faults never escape the engine as raw exceptions; these types are
raised for programmer-contract violations (bad configuration, malformed
serialized schemas, misuse of the async controller) and used internally to
carry network fault classification between a validator and the controller.

Example:
    ```python
    from dataknobs_validation.exceptions import SchemaParseError

    try:
        schema = FormSchema.from_json(text)
    except SchemaParseError as e:
        logger.error("Bad schema: %s (%s)", e, e.context)
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class ValidationFrameworkError(Exception):
    """Base exception for the validation package.

    Supports optional context data for rich error information.

    Attributes:
        context: Dictionary containing contextual information about the error
        details: Alias for context

    Example:
        ```python
        error = ValidationFrameworkError(
            "Operation failed",
            context={"field": "email", "validator": "uniqueEmail"}
        )
        str(error)
        # 'Operation failed'
        ```
    """

    def __init__(
        self,
        message: str,
        context: Dict[str, Any] | None = None,
        details: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.context = details or context or {}
        self.details = self.context


class ConfigurationError(ValidationFrameworkError):
    """Raised when settings or a policy definition are invalid."""


class SchemaParseError(ValidationFrameworkError):
    """Raised when a serialized schema cannot be parsed.

    Example:
        ```python
        raise SchemaParseError(
            "Field schema must be a mapping",
            context={"field": "email", "got": "list"}
        )
        ```
    """


class ValidatorNotFoundError(ValidationFrameworkError):
    """Raised when a validator type is looked up strictly and is not registered."""


class SchemaNotFoundError(ValidationFrameworkError):
    """Raised when a predefined schema name is not in the catalog."""


class ValidationContractError(ValidationFrameworkError):
    """Raised when the async controller is called in a way it does not support.

    Examples are executing without a validation context, or asking for the
    cancellation token of a field that has no validation in flight.
    """


class NetworkErrorKind(Enum):
    """Classification of faults raised by network-backed validators."""

    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        """Whether faults of this kind are worth another attempt."""
        return self is not NetworkErrorKind.UNKNOWN


class NetworkValidationError(ValidationFrameworkError):
    """A classified network fault raised by (or on behalf of) a validator.

    Args:
        message: Human-readable error message
        kind: Fault classification
        retryable: Whether the controller may retry; defaults to the kind's rule
        status_code: HTTP status code, when the fault came from a response
    """

    def __init__(
        self,
        message: str,
        kind: NetworkErrorKind = NetworkErrorKind.UNKNOWN,
        retryable: bool | None = None,
        status_code: int | None = None,
    ):
        super().__init__(
            message,
            context={"kind": kind.value, "status_code": status_code},
        )
        self.kind = kind
        self.retryable = kind.retryable if retryable is None else retryable
        self.status_code = status_code

    @classmethod
    def from_status(cls, status: int, message: str | None = None) -> NetworkValidationError:
        """Classify an HTTP status code.

        429 is rate limiting, 5xx is a server error, anything else is an
        unknown, non-retryable HTTP error.
        """
        if status == 429:
            return cls(message or "Rate limited", NetworkErrorKind.RATE_LIMITED, status_code=status)
        if status >= 500:
            return cls(message or "Server error", NetworkErrorKind.SERVER_ERROR, status_code=status)
        return cls(message or f"HTTP {status}", NetworkErrorKind.UNKNOWN, status_code=status)


__all__ = [
    "ValidationFrameworkError",
    "ConfigurationError",
    "SchemaParseError",
    "ValidatorNotFoundError",
    "SchemaNotFoundError",
    "ValidationContractError",
    "NetworkErrorKind",
    "NetworkValidationError",
]
