"""Immutable schema model for record validation.

Schemas only describe constraints; validators are referenced by registered
type name, never embedded, which is what makes a schema serializable.

The serialized form is a JSON-compatible document::

    {
      "fields": {
        "email": {
          "validators": [{"type": "email"}, {"type": "uniqueEmail", "async": true}],
          "required": true,
          "dependsOn": ["username"]
        }
      },
      "formValidators": [{"type": "matchFields", "params": {...}}],
      "options": {"abortEarly": false, "stripUnknown": true, "debounceMs": 300}
    }
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import SchemaParseError


def _frozen_params(params: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if params is None:
        return None
    return MappingProxyType(copy.deepcopy(dict(params)))


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SchemaParseError(
            f"{what} must be a mapping",
            context={"got": type(value).__name__},
        )
    return value


def _optional_bool(value: Any, what: str) -> bool | None:
    if value is not None and not isinstance(value, bool):
        raise SchemaParseError(f"{what} must be a boolean", context={"got": repr(value)})
    return value


def _optional_int(value: Any, what: str) -> int | None:
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise SchemaParseError(f"{what} must be an integer", context={"got": repr(value)})
    return value


@dataclass(frozen=True)
class ValidatorSpec:
    """Reference to one registered validator plus its arguments.

    Attributes:
        type: Registered validator type name
        params: Arguments bound when the validator is a factory
        message: Message override applied to this validator's errors
        is_async: Whether the schema marks this validator as asynchronous
    """

    type: str
    params: Mapping[str, Any] | None = None
    message: str | None = None
    is_async: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type:
            raise SchemaParseError("Validator type must be a non-empty string", context={"type": self.type})
        if self.message is not None and not isinstance(self.message, str):
            raise SchemaParseError(
                f"Message of validator '{self.type}' must be a string",
                context={"got": type(self.message).__name__},
            )
        object.__setattr__(self, "params", _frozen_params(self.params))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.params is not None:
            data["params"] = copy.deepcopy(dict(self.params))
        if self.message is not None:
            data["message"] = self.message
        if self.is_async:
            data["async"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidatorSpec:
        data = _require_mapping(data, "Validator definition")
        params = data.get("params")
        if params is not None:
            _require_mapping(params, f"Params of validator '{data.get('type')}'")
        return cls(
            type=data.get("type"),  # type: ignore[arg-type]
            params=params,
            message=data.get("message"),
            is_async=bool(_optional_bool(data.get("async", data.get("isAsync")), "async")),
        )

    @classmethod
    def coerce(cls, value: ValidatorSpec | Mapping[str, Any] | str) -> ValidatorSpec:
        """Accept a spec, its dict form, or a bare type name."""
        if isinstance(value, ValidatorSpec):
            return value
        if isinstance(value, str):
            return cls(type=value)
        return cls.from_dict(value)


@dataclass(frozen=True)
class ValidationOptions:
    """Behavior switches for form validation.

    ``None`` means "not set"; in particular leaving both ``strip_unknown``
    and ``allow_unknown`` unset strips unknown keys from the output.
    """

    abort_early: bool | None = None
    strip_unknown: bool | None = None
    allow_unknown: bool | None = None
    debounce_ms: int | None = None

    _KEYS = (
        ("abort_early", "abortEarly"),
        ("strip_unknown", "stripUnknown"),
        ("allow_unknown", "allowUnknown"),
        ("debounce_ms", "debounceMs"),
    )

    @property
    def keeps_unknown(self) -> bool:
        """Whether input keys missing from the schema survive into the output."""
        return self.allow_unknown is True and self.strip_unknown is not True

    def merge(self, other: ValidationOptions | None) -> ValidationOptions:
        """Shallow merge; values set on ``other`` win."""
        if other is None:
            return self
        values = {
            attr: getattr(other, attr) if getattr(other, attr) is not None else getattr(self, attr)
            for attr, _ in self._KEYS
        }
        return ValidationOptions(**values)

    def to_dict(self) -> dict[str, Any]:
        return {
            key: getattr(self, attr)
            for attr, key in self._KEYS
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidationOptions:
        data = _require_mapping(data, "Options")
        values = {attr: data.get(key, data.get(attr)) for attr, key in cls._KEYS}
        for attr, key in cls._KEYS:
            if attr == "debounce_ms":
                _optional_int(values[attr], key)
            else:
                _optional_bool(values[attr], key)
        return cls(**values)


@dataclass(frozen=True)
class FieldSchema:
    """Ordered validators and metadata for one field."""

    validators: tuple[ValidatorSpec, ...] = ()
    required: bool | None = None
    depends_on: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "validators", tuple(ValidatorSpec.coerce(v) for v in self.validators)
        )
        if self.depends_on is not None:
            object.__setattr__(self, "depends_on", tuple(self.depends_on))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"validators": [v.to_dict() for v in self.validators]}
        if self.required is not None:
            data["required"] = self.required
        if self.depends_on is not None:
            data["dependsOn"] = list(self.depends_on)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldSchema:
        data = _require_mapping(data, "Field schema")
        validators = data.get("validators", [])
        if not isinstance(validators, list):
            raise SchemaParseError("Field validators must be a list", context={"got": type(validators).__name__})
        depends_on = data.get("dependsOn", data.get("depends_on"))
        if depends_on is not None and not isinstance(depends_on, list):
            raise SchemaParseError("dependsOn must be a list", context={"got": type(depends_on).__name__})
        return cls(
            validators=tuple(ValidatorSpec.from_dict(v) for v in validators),
            required=_optional_bool(data.get("required"), "required"),
            depends_on=tuple(depends_on) if depends_on is not None else None,
        )


@dataclass(frozen=True)
class FormSchema:
    """Complete validation schema for one record.

    ``fields`` preserves declaration order, which is the order fields are
    validated in.
    """

    fields: Mapping[str, FieldSchema] = field(default_factory=dict)
    form_validators: tuple[ValidatorSpec, ...] = ()
    options: ValidationOptions | None = None

    def __post_init__(self) -> None:
        fields = {
            name: fs if isinstance(fs, FieldSchema) else FieldSchema.from_dict(fs)
            for name, fs in self.fields.items()
        }
        object.__setattr__(self, "fields", MappingProxyType(fields))
        object.__setattr__(
            self, "form_validators", tuple(ValidatorSpec.coerce(v) for v in self.form_validators)
        )

    @property
    def effective_options(self) -> ValidationOptions:
        return self.options or ValidationOptions()

    def iter_validators(self) -> Iterable[ValidatorSpec]:
        """Every validator spec in the schema, field validators first."""
        for field_schema in self.fields.values():
            yield from field_schema.validators
        yield from self.form_validators

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"fields": {name: fs.to_dict() for name, fs in self.fields.items()}}
        if self.form_validators:
            data["formValidators"] = [v.to_dict() for v in self.form_validators]
        if self.options is not None:
            data["options"] = self.options.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FormSchema:
        data = _require_mapping(data, "Schema")
        fields = _require_mapping(data.get("fields", {}), "Schema fields")
        form_validators = data.get("formValidators", data.get("form_validators")) or []
        if not isinstance(form_validators, list):
            raise SchemaParseError(
                "formValidators must be a list", context={"got": type(form_validators).__name__}
            )
        options = data.get("options")
        return cls(
            fields={name: FieldSchema.from_dict(fs) for name, fs in fields.items()},
            form_validators=tuple(ValidatorSpec.from_dict(v) for v in form_validators),
            options=ValidationOptions.from_dict(options) if options is not None else None,
        )

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> FormSchema:
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise SchemaParseError("Invalid schema JSON", context={"error": str(e)}) from e
        return cls.from_dict(data)

    @classmethod
    def from_yaml(cls, text: str) -> FormSchema:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SchemaParseError("Invalid schema YAML", context={"error": str(e)}) from e
        return cls.from_dict(data if data is not None else {})

    @classmethod
    def from_file(cls, path: str | Path) -> FormSchema:
        """Load a schema from a JSON or YAML file."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return cls.from_json(text)
        return cls.from_yaml(text)


__all__ = [
    "ValidatorSpec",
    "ValidationOptions",
    "FieldSchema",
    "FormSchema",
]
