"""Fluent construction of form schemas.

The builder mutates its own draft; ``build()`` returns an immutable
``FormSchema`` that later builder calls never touch.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from .schema import FieldSchema, FormSchema, ValidationOptions, ValidatorSpec

ValidatorLike = ValidatorSpec | Mapping[str, Any] | str


def validator(
    type: str,
    params: Mapping[str, Any] | None = None,
    message: str | None = None,
    is_async: bool = False,
) -> ValidatorSpec:
    """Shorthand for a ``ValidatorSpec``."""
    return ValidatorSpec(type=type, params=params, message=message, is_async=is_async)


@dataclass(frozen=True)
class SchemaStats:
    field_count: int
    required_field_count: int
    total_validators: int
    form_validator_count: int
    async_validator_count: int
    has_options: bool


class SchemaBuilder:
    """Fluent builder for ``FormSchema``.

    Example:
        ```python
        schema = (
            SchemaBuilder.create()
            .field("email", ["required", "email"], required=True)
            .field("password", [validator("password", {"minLength": 12})], required=True)
            .field("confirm", [validator("matchField", {"field": "password"})])
            .abort_early()
            .build()
        )
        ```
    """

    def __init__(self) -> None:
        self._fields: dict[str, FieldSchema] = {}
        self._form_validators: list[ValidatorSpec] = []
        self._options: ValidationOptions | None = None

    @classmethod
    def create(cls) -> SchemaBuilder:
        return cls()

    def field(
        self,
        name: str,
        validators: Iterable[ValidatorLike] = (),
        required: bool | None = None,
        depends_on: Iterable[str] | None = None,
    ) -> SchemaBuilder:
        """Add or replace a field."""
        self._fields[name] = FieldSchema(
            validators=tuple(ValidatorSpec.coerce(v) for v in validators),
            required=required,
            depends_on=tuple(depends_on) if depends_on is not None else None,
        )
        return self

    def _ensure(self, name: str) -> FieldSchema:
        return self._fields.setdefault(name, FieldSchema())

    def required(self, name: str, value: bool = True) -> SchemaBuilder:
        """Mark a field as required, creating it if needed."""
        self._fields[name] = replace(self._ensure(name), required=value)
        return self

    def depends_on(self, name: str, dependencies: Iterable[str]) -> SchemaBuilder:
        self._fields[name] = replace(self._ensure(name), depends_on=tuple(dependencies))
        return self

    def form_validator(self, spec: ValidatorLike) -> SchemaBuilder:
        """Add a cross-field validator run after all fields."""
        self._form_validators.append(ValidatorSpec.coerce(spec))
        return self

    def options(self, options: ValidationOptions | Mapping[str, Any] | None = None, **kwargs: Any) -> SchemaBuilder:
        """Shallow-merge options; accepts an options object, a dict, or keywords."""
        if isinstance(options, Mapping):
            options = ValidationOptions.from_dict(options)
        if kwargs:
            options = (options or ValidationOptions()).merge(ValidationOptions(**kwargs))
        self._options = (self._options or ValidationOptions()).merge(options)
        return self

    def abort_early(self, value: bool = True) -> SchemaBuilder:
        return self.options(abort_early=value)

    def strip_unknown(self, value: bool = True) -> SchemaBuilder:
        return self.options(strip_unknown=value)

    def allow_unknown(self, value: bool = True) -> SchemaBuilder:
        return self.options(allow_unknown=value)

    def debounce(self, milliseconds: int) -> SchemaBuilder:
        return self.options(debounce_ms=milliseconds)

    def build(self) -> FormSchema:
        return FormSchema(
            fields=dict(self._fields),
            form_validators=tuple(self._form_validators),
            options=self._options,
        )

    def serialize(self) -> str:
        """JSON text of the current draft."""
        return self.build().to_json()

    @staticmethod
    def deserialize(text: str) -> FormSchema:
        """Parse JSON schema text.

        Raises:
            SchemaParseError: If the text is not a valid schema
        """
        return FormSchema.from_json(text)

    @classmethod
    def from_schema(cls, schema: FormSchema) -> SchemaBuilder:
        """Start a new draft from an existing schema."""
        builder = cls()
        builder._fields = dict(schema.fields)
        builder._form_validators = list(schema.form_validators)
        builder._options = schema.options
        return builder

    def clone(self) -> SchemaBuilder:
        # Field schemas are immutable, so copying the containers is enough
        return SchemaBuilder.from_schema(self.build())

    def merge(self, other: FormSchema | SchemaBuilder) -> SchemaBuilder:
        """Merge another schema into this draft.

        Fields from ``other`` win, form validators are concatenated and
        options are shallow-merged.
        """
        schema = other.build() if isinstance(other, SchemaBuilder) else other
        self._fields.update(schema.fields)
        self._form_validators.extend(schema.form_validators)
        if schema.options is not None:
            self.options(schema.options)
        return self

    def remove_field(self, name: str) -> SchemaBuilder:
        self._fields.pop(name, None)
        return self

    def has_field(self, name: str) -> bool:
        return name in self._fields

    def get_field(self, name: str) -> FieldSchema | None:
        return self._fields.get(name)

    def update_field(self, name: str, updater: Callable[[FieldSchema], FieldSchema]) -> SchemaBuilder:
        """Replace an existing field with ``updater(current)``; missing fields are ignored."""
        if name in self._fields:
            self._fields[name] = updater(self._fields[name])
        return self

    def add_validators(self, name: str, validators: Iterable[ValidatorLike]) -> SchemaBuilder:
        current = self._ensure(name)
        added = tuple(ValidatorSpec.coerce(v) for v in validators)
        self._fields[name] = replace(current, validators=current.validators + added)
        return self

    def remove_validators(self, name: str, types: Iterable[str]) -> SchemaBuilder:
        """Drop validators of the given types from a field."""
        if name in self._fields:
            drop = set(types)
            current = self._fields[name]
            self._fields[name] = replace(
                current, validators=tuple(v for v in current.validators if v.type not in drop)
            )
        return self

    def get_stats(self) -> SchemaStats:
        fields = list(self._fields.values())
        return SchemaStats(
            field_count=len(fields),
            required_field_count=sum(1 for f in fields if f.required),
            total_validators=sum(len(f.validators) for f in fields),
            form_validator_count=len(self._form_validators),
            async_validator_count=sum(1 for f in fields for v in f.validators if v.is_async),
            has_options=self._options is not None,
        )


def create_schema() -> SchemaBuilder:
    return SchemaBuilder.create()


def define_schema(definition: Mapping[str, Any]) -> FormSchema:
    """Build a schema from a plain definition.

    Args:
        definition: ``{"fields": {name: {"validators": [...], "required": ...,
            "depends_on": [...]}}, "form_validators": [...], "options": {...}}``;
            camelCase keys are accepted as well
    """
    builder = SchemaBuilder.create()
    for name, field_def in definition.get("fields", {}).items():
        builder.field(
            name,
            field_def.get("validators", ()),
            required=field_def.get("required"),
            depends_on=field_def.get("depends_on", field_def.get("dependsOn")),
        )
    for spec in definition.get("form_validators", definition.get("formValidators")) or ():
        builder.form_validator(spec)
    options = definition.get("options")
    if options:
        builder.options(options)
    return builder.build()


def create_update_schema(base: FormSchema, required_fields: Iterable[str] = ()) -> FormSchema:
    """Schema for partial updates: every field optional except ``required_fields``.

    Validators, dependencies, form validators and options are kept.
    """
    keep_required = set(required_fields)
    builder = SchemaBuilder.from_schema(base)
    for name in base.fields:
        builder.update_field(name, lambda f, name=name: replace(f, required=name in keep_required))
    return builder.build()


def create_partial_schema(base: FormSchema, field_names: Iterable[str]) -> FormSchema:
    """Schema restricted to ``field_names`` (in that order).

    Unknown names are ignored and ``depends_on`` is filtered to the kept
    fields. Form validators are not carried over; options are kept.
    """
    names = [name for name in field_names if name in base.fields]
    builder = SchemaBuilder.create()
    for name in names:
        field_schema = base.fields[name]
        depends_on = field_schema.depends_on
        builder.field(
            name,
            field_schema.validators,
            required=field_schema.required,
            depends_on=[d for d in depends_on if d in names] if depends_on is not None else None,
        )
    if base.options is not None:
        builder.options(base.options)
    return builder.build()


__all__ = [
    "validator",
    "SchemaStats",
    "SchemaBuilder",
    "create_schema",
    "define_schema",
    "create_update_schema",
    "create_partial_schema",
]
