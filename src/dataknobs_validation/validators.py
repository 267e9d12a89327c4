"""Built-in synchronous validators.

Each validator is a callable class following the validator contract
``(value, context) -> ValidationResult``. Parameterized validators expose a
``from_params`` classmethod that the registry uses as their factory.

Apart from ``Required``, validators let blank values through so that
optional fields are not format-checked; the engine's required check owns
emptiness.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any

from .registry import ValidatorMetadata, ValidatorRegistry
from .result import ValidationContext, ValidationResult

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

COMMON_PASSWORDS = frozenset({
    "password", "password123", "123456", "123456789", "qwerty", "abc123",
    "password1", "admin", "letmein", "welcome", "monkey", "1234567890",
    "dragon", "master", "hello", "freedom", "whatever", "qazwsx",
    "trustno1", "jordan", "hunter", "buster", "soccer", "harley",
    "batman", "andrew", "tigger", "sunshine", "iloveyou", "2000",
    "charlie", "robert", "thomas", "hockey", "ranger", "daniel",
    "starwars", "klaster", "112233", "george", "computer",
    "michelle", "jessica", "pepper", "1111", "zxcvbn", "555555",
    "11111111", "131313", "777777", "pass", "maggie",
})

DEFAULT_SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

_DIGITS = "0123456789"
_LETTERS = "abcdefghijklmnopqrstuvwxyz"
_REPEATED = re.compile(r"(.)\1{2,}")


def is_empty(value: Any) -> bool:
    """None, a whitespace-only string, or an empty sequence/set."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def _runs(alphabet: str) -> list[str]:
    forward = [alphabet[i:i + 3] for i in range(len(alphabet) - 2)]
    return forward + [run[::-1] for run in forward]


_DIGIT_RUNS = _runs(_DIGITS) + ["890"]
_LETTER_RUNS = _runs(_LETTERS)


class FieldValidator(ABC):
    """Base class for built-in validators."""

    @abstractmethod
    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Required(FieldValidator):
    """Value must not be empty."""

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.fail([context.error("required")])
        return ValidationResult.ok(value)


class Email(FieldValidator):
    """Value must be an email address; surrounding whitespace is trimmed."""

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.ok(value)
        email = str(value).strip()
        if not EMAIL_PATTERN.match(email):
            return ValidationResult.fail([context.error("email")])
        return ValidationResult.ok(email)


class MinLength(FieldValidator):
    def __init__(self, min: int):
        self.min = min

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> MinLength:
        return cls(int(params["min"]))

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.ok(value)
        if len(value) < self.min:
            return ValidationResult.fail([context.error("minLength", {"min": self.min})])
        return ValidationResult.ok(value)

    def __repr__(self) -> str:
        return f"MinLength({self.min})"


class MaxLength(FieldValidator):
    def __init__(self, max: int):
        self.max = max

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> MaxLength:
        return cls(int(params["max"]))

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.ok(value)
        if len(value) > self.max:
            return ValidationResult.fail([context.error("maxLength", {"max": self.max})])
        return ValidationResult.ok(value)

    def __repr__(self) -> str:
        return f"MaxLength({self.max})"


class Pattern(FieldValidator):
    """String must match a regular expression (searched, not anchored).

    Args:
        pattern: Regex source or compiled pattern
        flags: JavaScript-style flag letters (``i``, ``m``, ``s``)
        message: Literal message used instead of the catalog text
    """

    _FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

    def __init__(self, pattern: str | re.Pattern[str], flags: str = "", message: str | None = None):
        if isinstance(pattern, re.Pattern):
            self.pattern = pattern
        else:
            re_flags = 0
            for letter in flags:
                re_flags |= self._FLAGS.get(letter, 0)
            self.pattern = re.compile(pattern, re_flags)
        self.message = message

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Pattern:
        return cls(params["pattern"], params.get("flags", ""), params.get("message"))

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.ok(value)
        if not self.pattern.search(str(value)):
            error = context.error("pattern", {"pattern": self.pattern.pattern})
            if self.message:
                error = error.with_message(self.message)
            return ValidationResult.fail([error])
        return ValidationResult.ok(value)

    def __repr__(self) -> str:
        return f"Pattern({self.pattern.pattern!r})"


def _to_number(value: Any) -> float | None:
    """Parse a number the lenient way form inputs need; None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else value
    if isinstance(value, str):
        match = re.match(r"\s*[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?", value)
        if match:
            return float(match.group(0))
    return None


class _Bound(FieldValidator):
    code = ""

    def __init__(self, bound: float):
        self.bound = bound

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> _Bound:
        return cls(params[cls.code])

    @abstractmethod
    def violates(self, number: float) -> bool:
        pass

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if value is None:
            return ValidationResult.ok(value)
        number = _to_number(value)
        if number is None:
            return ValidationResult.fail([context.error("invalidNumber")])
        if self.violates(number):
            return ValidationResult.fail([context.error(self.code, {self.code: self.bound})])
        # Numeric strings come out as numbers
        return ValidationResult.ok(number)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.bound})"


class Min(_Bound):
    code = "min"

    def violates(self, number: float) -> bool:
        return number < self.bound


class Max(_Bound):
    code = "max"

    def violates(self, number: float) -> bool:
        return number > self.bound


@dataclass(frozen=True)
class PasswordRequirements:
    """Complexity rules for ``Password``. Keys accept camelCase in params."""

    min_length: int = 8
    max_length: int = 128
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_digit: bool = True
    require_special_char: bool = False
    special_chars: str = DEFAULT_SPECIAL_CHARS
    disallow_common: bool = True
    disallow_sequences: bool = True

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> PasswordRequirements:
        names = {f.name for f in fields(cls)}
        values = {}
        for key, value in params.items():
            name = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
            if name in names:
                values[name] = value
        return cls(**values)


class Password(FieldValidator):
    """Password complexity check.

    Every violated rule is reported as its own error. With ``summarize`` the
    violations are folded into one ``passwordComplexity`` error whose params
    carry the individual errors.
    """

    def __init__(self, requirements: PasswordRequirements | None = None, summarize: bool = False):
        self.requirements = requirements or PasswordRequirements()
        self.summarize = summarize

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> Password:
        return cls(PasswordRequirements.from_params(params), bool(params.get("summarize", False)))

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.ok(value)
        password = str(value)
        reqs = self.requirements
        errors = []

        if len(password) < reqs.min_length:
            errors.append(context.error(
                "passwordMinLength", {"minLength": reqs.min_length, "actualLength": len(password)}
            ))
        if len(password) > reqs.max_length:
            errors.append(context.error(
                "passwordMaxLength", {"maxLength": reqs.max_length, "actualLength": len(password)}
            ))
        if reqs.require_uppercase and not re.search(r"[A-Z]", password):
            errors.append(context.error("passwordUppercase"))
        if reqs.require_lowercase and not re.search(r"[a-z]", password):
            errors.append(context.error("passwordLowercase"))
        if reqs.require_digit and not re.search(r"\d", password):
            errors.append(context.error("passwordDigit"))
        if reqs.require_special_char and not any(c in reqs.special_chars for c in password):
            errors.append(context.error("passwordSpecialChar", {"specialChars": reqs.special_chars}))
        if reqs.disallow_common and password.lower() in COMMON_PASSWORDS:
            errors.append(context.error("passwordCommon"))
        if reqs.disallow_sequences:
            lowered = password.lower()
            if any(run in password for run in _DIGIT_RUNS):
                errors.append(context.error("passwordSequence", {"kind": "numbers"}))
            if any(run in lowered for run in _LETTER_RUNS):
                errors.append(context.error("passwordSequence", {"kind": "letters"}))
            if _REPEATED.search(password):
                errors.append(context.error("passwordRepeated"))

        if not errors:
            return ValidationResult.ok(password)
        if self.summarize:
            return ValidationResult.fail([context.error(
                "passwordComplexity",
                {"requirements": asdict(reqs), "specificErrors": [e.to_dict() for e in errors]},
            )])
        return ValidationResult.fail(errors)


class MatchField(FieldValidator):
    """Value must equal another field of the same record.

    Args:
        field: Name of the field to compare against
        message: Literal message used instead of the catalog text
    """

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        self.message = message

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> MatchField:
        return cls(params["field"], params.get("message"))

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        if is_empty(value):
            return ValidationResult.ok(value)
        if context.form_data is None:
            return ValidationResult.fail([context.error("matchFieldNoContext")])
        if value != context.form_data.get(self.field):
            error = context.error("matchField", {"targetField": self.field})
            if self.message:
                error = error.with_message(self.message)
            return ValidationResult.fail([error])
        return ValidationResult.ok(value)

    def __repr__(self) -> str:
        return f"MatchField({self.field!r})"


class MatchFields(FieldValidator):
    """Form-level check that ``field`` equals ``target`` in the record.

    The error is reported against ``field``.
    """

    def __init__(self, field: str, target: str, message: str | None = None):
        self.field = field
        self.target = target
        self.message = message

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> MatchFields:
        return cls(params["field"], params["target"], params.get("message"))

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        data = value if isinstance(value, Mapping) else context.form_data
        if data.get(self.field) != data.get(self.target):
            error = context.for_field(self.field).error("matchField", {"targetField": self.target})
            if self.message:
                error = error.with_message(self.message)
            return ValidationResult.fail([error])
        return ValidationResult.ok(value)


class DifferentFields(MatchFields):
    """Form-level check that ``field`` differs from ``target``; blank values pass."""

    def __call__(self, value: Any, context: ValidationContext) -> ValidationResult:
        data = value if isinstance(value, Mapping) else context.form_data
        current = data.get(self.field)
        if not is_empty(current) and current == data.get(self.target):
            error = context.for_field(self.field).error("differentField", {"targetField": self.target})
            if self.message:
                error = error.with_message(self.message)
            return ValidationResult.fail([error])
        return ValidationResult.ok(value)


def calculate_password_strength(password: str) -> dict[str, Any]:
    """Score a password from 0 to 100.

    Returns:
        Dict with ``score``, ``feedback`` (list of hints) and ``level``
        (very-weak, weak, fair, good or strong)
    """
    if not password:
        return {"score": 0, "feedback": ["Password is required"], "level": "very-weak"}

    score = 0
    feedback = []

    if len(password) >= 8:
        score += 25
    else:
        feedback.append("Use at least 8 characters")
    if len(password) >= 12:
        score += 10
    if len(password) >= 16:
        score += 10

    for pattern, points, hint in (
        (r"[a-z]", 10, "Add lowercase letters"),
        (r"[A-Z]", 10, "Add uppercase letters"),
        (r"\d", 10, "Add numbers"),
        (r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]", 15, "Add special characters"),
    ):
        if re.search(pattern, password):
            score += points
        else:
            feedback.append(hint)

    if _REPEATED.search(password):
        score -= 10
        feedback.append("Avoid repeated characters")
    if password.lower() in COMMON_PASSWORDS:
        score -= 25
        feedback.append("Avoid common passwords")

    score = max(0, min(100, score))
    if score < 20:
        level = "very-weak"
    elif score < 40:
        level = "weak"
    elif score < 60:
        level = "fair"
    elif score < 80:
        level = "good"
    else:
        level = "strong"
    return {"score": score, "feedback": feedback, "level": level}


def register_builtin_validators(registry: ValidatorRegistry) -> None:
    """Register the built-in validators under their schema type names."""
    registry.register("required", Required(), ValidatorMetadata(
        description="Validates that a field has a value",
        examples=('{"type": "required"}',),
    ))
    registry.register("email", Email(), ValidatorMetadata(
        description="Validates email format",
        examples=('{"type": "email"}',),
    ))
    registry.register("minLength", MinLength.from_params, ValidatorMetadata(
        description="Validates minimum string length",
        parameter_schema={"min": "number"},
        examples=('{"type": "minLength", "params": {"min": 8}}',),
    ), factory=True)
    registry.register("maxLength", MaxLength.from_params, ValidatorMetadata(
        description="Validates maximum string length",
        parameter_schema={"max": "number"},
        examples=('{"type": "maxLength", "params": {"max": 255}}',),
    ), factory=True)
    registry.register("pattern", Pattern.from_params, ValidatorMetadata(
        description="Validates string against regex pattern",
        parameter_schema={"pattern": "string", "flags": "string?", "message": "string?"},
        examples=('{"type": "pattern", "params": {"pattern": "^[a-zA-Z]+$", "message": "Only letters allowed"}}',),
    ), factory=True)
    registry.register("min", Min.from_params, ValidatorMetadata(
        description="Validates minimum numeric value",
        parameter_schema={"min": "number"},
    ), factory=True)
    registry.register("max", Max.from_params, ValidatorMetadata(
        description="Validates maximum numeric value",
        parameter_schema={"max": "number"},
    ), factory=True)
    registry.register("password", Password.from_params, ValidatorMetadata(
        description="Validates password complexity",
        parameter_schema={
            "minLength": "number?",
            "maxLength": "number?",
            "requireUppercase": "boolean?",
            "requireLowercase": "boolean?",
            "requireDigit": "boolean?",
            "requireSpecialChar": "boolean?",
            "specialChars": "string?",
            "disallowCommon": "boolean?",
            "disallowSequences": "boolean?",
            "summarize": "boolean?",
        },
        examples=('{"type": "password"}', '{"type": "password", "params": {"minLength": 12}}'),
    ), factory=True)
    registry.register("matchField", MatchField.from_params, ValidatorMetadata(
        description="Validates that field matches another field value",
        parameter_schema={"field": "string", "message": "string?"},
    ), factory=True)
    registry.register("matchFields", MatchFields.from_params, ValidatorMetadata(
        description="Form-level check that two fields hold the same value",
        parameter_schema={"field": "string", "target": "string", "message": "string?"},
    ), factory=True)
    registry.register("differentFields", DifferentFields.from_params, ValidatorMetadata(
        description="Form-level check that a field differs from another field",
        parameter_schema={"field": "string", "target": "string", "message": "string?"},
    ), factory=True)


def create_registry_with_builtins(name: str = "validators") -> ValidatorRegistry:
    """A new registry with the built-in validators registered."""
    registry = ValidatorRegistry(name)
    register_builtin_validators(registry)
    return registry


__all__ = [
    "is_empty",
    "FieldValidator",
    "Required",
    "Email",
    "MinLength",
    "MaxLength",
    "Pattern",
    "Min",
    "Max",
    "PasswordRequirements",
    "Password",
    "MatchField",
    "MatchFields",
    "DifferentFields",
    "calculate_password_strength",
    "register_builtin_validators",
    "create_registry_with_builtins",
]
