"""Schema-driven field and form validation.

The engine looks validators up by type name in an injected registry, runs
synchronous ones inline and hands asynchronous ones to the async controller
(through the debouncer when one is configured and the record is not being
submitted). It never lets a validator fault escape: faults become a single
``validationError`` error on the field.

Example:
    ```python
    registry = create_registry_with_builtins()
    engine = ValidationEngine(registry)

    schema = (
        SchemaBuilder.create()
        .field("email", [validator("required"), validator("email")], required=True)
        .build()
    )
    result = await engine.validate_form({"email": "a@b.com"}, schema)
    result.data  # {'email': 'a@b.com'}
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from .controller import AsyncValidationController, invoke_validator
from .debounce import Debouncer
from .exceptions import ConfigurationError, SchemaParseError
from . import messages
from .messages import interpolate
from .registry import RegistryEntry, ValidatorRegistry
from .result import (
    CancelledValidationResult,
    MessageResolver,
    ValidationContext,
    ValidationError,
    ValidationResult,
)
from .schema import FieldSchema, FormSchema, ValidationOptions, ValidatorSpec
from .validators import is_empty

logger = logging.getLogger(__name__)

UNKNOWN_VALIDATOR_POLICIES = ("warn", "strict")


class ValidationEngine:
    """Evaluates fields and forms against schemas.

    Args:
        registry: Registry the schema's validator types are looked up in
        controller: Controller for async validators (a default one is created)
        debouncer: Optional debouncer used for async validators outside submission
        message_resolver: Resolver for contexts the engine creates
        unknown_validators: ``"warn"`` logs and skips unregistered types,
            ``"strict"`` records an ``unknownValidator`` error
    """

    def __init__(
        self,
        registry: ValidatorRegistry,
        controller: AsyncValidationController | None = None,
        debouncer: Debouncer | None = None,
        message_resolver: MessageResolver | None = None,
        unknown_validators: str = "warn",
    ):
        if unknown_validators not in UNKNOWN_VALIDATOR_POLICIES:
            raise ConfigurationError(
                f"Unknown validator policy must be one of {UNKNOWN_VALIDATOR_POLICIES}",
                context={"unknown_validators": unknown_validators},
            )
        self._registry = registry
        self._controller = controller or (debouncer.controller if debouncer else AsyncValidationController())
        self._debouncer = debouncer
        self._message_resolver = message_resolver or messages.MessageResolver()
        self._unknown_validators = unknown_validators

    @property
    def registry(self) -> ValidatorRegistry:
        return self._registry

    @property
    def controller(self) -> AsyncValidationController:
        return self._controller

    @property
    def debouncer(self) -> Debouncer | None:
        return self._debouncer

    def create_context(
        self,
        form_data: dict[str, Any] | None = None,
        is_submitting: bool = False,
        context_name: str | None = None,
    ) -> ValidationContext:
        """Build a context using this engine's message resolver."""
        return ValidationContext(
            form_data=form_data if form_data is not None else {},
            is_submitting=is_submitting,
            message_resolver=self._message_resolver,
            context_name=context_name,
        )

    async def validate_field(
        self,
        value: Any,
        field_schema: FieldSchema,
        context: ValidationContext | None = None,
        options: ValidationOptions | None = None,
    ) -> ValidationResult:
        """Validate one value against a field schema.

        Args:
            value: Value to validate
            field_schema: Field's validators and required flag
            context: Context for the field (``field_path`` names the field)
            options: Form options; only ``abort_early`` and ``debounce_ms`` apply here

        Returns:
            The field result, or a ``CancelledValidationResult`` when a newer
            async validation took the field over
        """
        context = context or self.create_context()
        options = options or ValidationOptions()

        if is_empty(value):
            if field_schema.required:
                return ValidationResult.fail([context.error("required")])
            return ValidationResult.ok(value)

        current = value
        errors: list[ValidationError] = []
        warnings: list[ValidationError] = []

        for spec in field_schema.validators:
            result = await self._apply(spec, current, context, options)
            if result is None:
                continue
            if isinstance(result, CancelledValidationResult):
                return result
            warnings.extend(result.warnings)
            if not result.success:
                errors.extend(result.errors)
                if options.abort_early:
                    break
            elif result.data is not None:
                current = result.data

        if errors:
            return ValidationResult(errors=errors, warnings=warnings)
        return ValidationResult.ok(current, warnings)

    async def validate_form(
        self,
        data: Mapping[str, Any],
        form_schema: FormSchema,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Validate a whole record: every field in order, then form validators.

        Returns:
            A result whose ``data`` is the shaped output record on success, or a
            ``CancelledValidationResult`` when any field was superseded
        """
        options = form_schema.effective_options
        form_data = dict(data or {})
        if context is None:
            base = self.create_context(form_data)
        else:
            base = replace(context, form_data=form_data, cancellation_token=None)

        validated: dict[str, Any] = {}
        errors: list[ValidationError] = []
        warnings: list[ValidationError] = []

        for name, field_schema in form_schema.fields.items():
            result = await self.validate_field(form_data.get(name), field_schema, base.for_field(name), options)
            if isinstance(result, CancelledValidationResult):
                return result
            warnings.extend(result.warnings)
            if result.success:
                if name in form_data or result.data is not None:
                    validated[name] = result.data
            else:
                errors.extend(result.errors)
                if options.abort_early:
                    break

        if not errors or not options.abort_early:
            form_context = base.for_field("")
            for spec in form_schema.form_validators:
                result = await self._apply(spec, validated, form_context, options)
                if result is None:
                    continue
                if isinstance(result, CancelledValidationResult):
                    return result
                warnings.extend(result.warnings)
                if not result.success:
                    errors.extend(result.errors)
                    if options.abort_early:
                        break

        if errors:
            return ValidationResult(errors=errors, warnings=warnings)
        if options.keeps_unknown:
            return ValidationResult.ok({**form_data, **validated}, warnings)
        return ValidationResult.ok(validated, warnings)

    async def validate_from_schema(
        self,
        data: Mapping[str, Any],
        schema: FormSchema | Mapping[str, Any] | str,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Validate against a live schema, its dict form or its JSON text.

        A schema that cannot be parsed yields one ``schemaParseError`` error.
        """
        try:
            if isinstance(schema, FormSchema):
                form_schema = schema
            elif isinstance(schema, str):
                form_schema = self.deserialize_schema(schema)
            elif isinstance(schema, Mapping):
                form_schema = FormSchema.from_dict(schema)
            else:
                raise SchemaParseError(
                    "Schema must be a FormSchema, mapping or JSON string",
                    context={"got": type(schema).__name__},
                )
        except SchemaParseError as e:
            logger.warning("Failed to parse validation schema: %s", e)
            error_context = context or self.create_context(dict(data or {}))
            return ValidationResult.fail([error_context.for_field("").error("schemaParseError", {"error": str(e)})])
        return await self.validate_form(data, form_schema, context)

    def serialize_schema(self, schema: FormSchema) -> str:
        return schema.to_json()

    def deserialize_schema(self, text: str) -> FormSchema:
        return FormSchema.from_json(text)

    def unknown_validators(self, schema: FormSchema) -> list[str]:
        """Validator types referenced by ``schema`` that are not registered."""
        missing: list[str] = []
        for spec in schema.iter_validators():
            if not self._registry.has(spec.type) and spec.type not in missing:
                missing.append(spec.type)
        return missing

    async def _apply(
        self,
        spec: ValidatorSpec,
        value: Any,
        context: ValidationContext,
        options: ValidationOptions,
    ) -> ValidationResult | None:
        """Run one validator spec; None when an unknown type is skipped."""
        entry = self._registry.get_entry(spec.type)
        if entry is None:
            if self._unknown_validators == "strict":
                return ValidationResult.fail([context.error("unknownValidator", {"validator": spec.type})])
            logger.warning(
                "Validator not found: %s (field %r), skipping", spec.type, context.field_path
            )
            return None

        return await self._execute(spec, entry, value, context, options)

    async def _execute(
        self,
        spec: ValidatorSpec,
        entry: RegistryEntry,
        value: Any,
        context: ValidationContext,
        options: ValidationOptions,
    ) -> ValidationResult:
        try:
            validator = self._registry.bind(spec, entry)
            if entry.is_async or spec.is_async:
                if self._debouncer is not None and not context.is_submitting:
                    result = await self._debouncer.validate(
                        validator, value, context, entry.policy, options.debounce_ms
                    )
                else:
                    result = await self._controller.execute_validator(validator, value, context, entry.policy)
            else:
                result = await invoke_validator(validator, value, context)
            if spec.message and result.errors:
                result.errors = [e.with_message(interpolate(spec.message, e.params)) for e in result.errors]
            return result
        except Exception as e:
            logger.warning(
                "Validator %s failed on field %r: %s", spec.type, context.field_path, e
            )
            return ValidationResult.fail([context.error("validationError", {"error": str(e)})])


__all__ = ["ValidationEngine", "UNKNOWN_VALIDATOR_POLICIES"]
