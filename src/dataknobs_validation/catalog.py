"""Predefined schemas for common account and room forms.

Schemas are immutable, so the catalog hands out the shared instances.
Uniqueness checks (``uniqueEmail``, ``uniqueSlug``) are only resolvable once
``register_async_validators`` has been called on the engine's registry.

Example:
    ```python
    from dataknobs_validation.catalog import get_validation_schema

    schema = get_validation_schema("login")
    result = await engine.validate_form(form, schema)
    ```
"""

from __future__ import annotations

from .builder import SchemaBuilder, validator
from .exceptions import SchemaNotFoundError
from .schema import FormSchema

UUID_PATTERN = "^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"

_PASSWORD_RULES = {
    "requireUppercase": True,
    "requireLowercase": True,
    "requireDigit": True,
    "requireSpecialChar": False,
    "minLength": 8,
}

USER_REGISTRATION = (
    SchemaBuilder.create()
    .field("email", ["required", "email", validator("uniqueEmail", is_async=True)], required=True)
    .field("password", [
        "required",
        validator("minLength", {"min": 8}),
        validator("password", _PASSWORD_RULES),
    ], required=True)
    .field("confirmPassword", [
        "required",
        validator("matchField", {"field": "password"}),
    ], required=True, depends_on=["password"])
    .field("fullName", [
        "required",
        validator("minLength", {"min": 2}),
        validator("maxLength", {"max": 50}),
        validator("pattern", {
            "pattern": r"^[a-zA-Z\s\-\.]+$",
            "message": "Name can only contain letters, spaces, hyphens, and periods",
        }),
    ], required=True)
    .form_validator(validator("matchFields", {"field": "confirmPassword", "target": "password"}))
    .options(debounce_ms=300, abort_early=False, strip_unknown=True)
    .build()
)

ROOM_CREATION = (
    SchemaBuilder.create()
    .field("name", [
        "required",
        validator("minLength", {"min": 1}),
        validator("maxLength", {"max": 100}),
    ], required=True)
    .field("slug", [
        validator("pattern", {
            "pattern": "^[a-z0-9-]+$",
            "message": "Slug can only contain lowercase letters, numbers, and hyphens",
        }),
        validator("minLength", {"min": 3}),
        validator("maxLength", {"max": 50}),
        validator("uniqueSlug", {"entity": "room"}, is_async=True),
    ])
    .field("maxParticipants", [validator("min", {"min": 1}), validator("max", {"max": 100})])
    .field("allowVideo", [])
    .field("description", [validator("maxLength", {"max": 500})])
    .options(debounce_ms=300, abort_early=False, strip_unknown=True)
    .build()
)

GUEST_INVITE = (
    SchemaBuilder.create()
    .field("email", ["required", "email"], required=True)
    .field("displayName", [
        "required",
        validator("minLength", {"min": 1}),
        validator("maxLength", {"max": 50}),
    ], required=True)
    .field("roomId", [
        "required",
        validator("pattern", {"pattern": UUID_PATTERN, "message": "Invalid room ID format"}),
    ], required=True)
    .field("message", [validator("maxLength", {"max": 200})])
    .options(debounce_ms=300, abort_early=False, strip_unknown=True)
    .build()
)

GUEST_INVITATION = (
    SchemaBuilder.create()
    .field("roomId", [
        "required",
        validator("pattern", {"pattern": UUID_PATTERN, "message": "Please select a valid room"}),
    ], required=True)
    .field("guestEmail", ["required", "email"], required=True)
    .field("guestName", [validator("minLength", {"min": 1}), validator("maxLength", {"max": 100})])
    .field("customMessage", [validator("maxLength", {"max": 500})])
    # At most one week
    .field("expiresInHours", [
        "required",
        validator("min", {"min": 1}),
        validator("max", {"max": 168}),
    ], required=True)
    .options(debounce_ms=300, abort_early=False, strip_unknown=True)
    .build()
)

LOGIN = (
    SchemaBuilder.create()
    .field("email", ["required", "email"], required=True)
    .field("password", ["required", validator("minLength", {"min": 1})], required=True)
    .field("rememberMe", [])
    .options(debounce_ms=200, abort_early=True, strip_unknown=True)
    .build()
)

PASSWORD_RESET = (
    SchemaBuilder.create()
    .field("email", ["required", "email"], required=True)
    .options(debounce_ms=300, abort_early=True, strip_unknown=True)
    .build()
)

PASSWORD_CHANGE = (
    SchemaBuilder.create()
    .field("currentPassword", ["required", validator("minLength", {"min": 1})], required=True)
    .field("newPassword", [
        "required",
        validator("minLength", {"min": 8}),
        validator("password", _PASSWORD_RULES),
    ], required=True)
    .field("confirmPassword", [
        "required",
        validator("matchField", {"field": "newPassword"}),
    ], required=True, depends_on=["newPassword"])
    .form_validator(validator("matchFields", {"field": "confirmPassword", "target": "newPassword"}))
    .form_validator(validator("differentFields", {"field": "newPassword", "target": "currentPassword"}))
    .options(debounce_ms=300, abort_early=False, strip_unknown=True)
    .build()
)

VALIDATION_SCHEMAS: dict[str, FormSchema] = {
    "userRegistration": USER_REGISTRATION,
    "roomCreation": ROOM_CREATION,
    "guestInvite": GUEST_INVITE,
    "guestInvitation": GUEST_INVITATION,
    "login": LOGIN,
    "passwordReset": PASSWORD_RESET,
    "passwordChange": PASSWORD_CHANGE,
}


def get_validation_schema(name: str) -> FormSchema:
    """Look up a predefined schema.

    Raises:
        SchemaNotFoundError: If no schema has that name
    """
    try:
        return VALIDATION_SCHEMAS[name]
    except KeyError:
        raise SchemaNotFoundError(
            f"Unknown validation schema: {name}",
            context={"name": name, "available": list(VALIDATION_SCHEMAS)},
        ) from None


def get_schema_names() -> list[str]:
    return list(VALIDATION_SCHEMAS)


def has_schema(name: str) -> bool:
    return name in VALIDATION_SCHEMAS


__all__ = [
    "VALIDATION_SCHEMAS",
    "get_validation_schema",
    "get_schema_names",
    "has_schema",
]
