"""Message lookup for validation errors.

The engine and validators never hardcode user-facing text: they hand an
error code plus parameters to a resolver. ``MessageResolver`` looks the code
up in a nested catalog with a fallback chain::

    validation.contexts.<context>.<key>
    validation.<key>
    validation.fallback.<key>
    validation.fallback.generic

Templates interpolate ``{{name}}`` placeholders from the parameters.
Catalogs can be loaded from YAML or JSON files.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

DEFAULT_MESSAGES: dict[str, Any] = {
    "validation": {
        "required": "This field is required",
        "email": "Please enter a valid email address",
        "minLength": "Must be at least {{min}} characters",
        "maxLength": "Must be less than {{max}} characters",
        "pattern": "Invalid format",
        "min": "Must be at least {{min}}",
        "max": "Must be no more than {{max}}",
        "invalidNumber": "Must be a valid number",
        "passwordComplexity": "Password does not meet the complexity requirements",
        "passwordMinLength": "Password must be at least {{minLength}} characters long",
        "passwordMaxLength": "Password must be no more than {{maxLength}} characters long",
        "passwordUppercase": "Password must contain at least one uppercase letter",
        "passwordLowercase": "Password must contain at least one lowercase letter",
        "passwordDigit": "Password must contain at least one number",
        "passwordSpecialChar": "Password must contain at least one special character ({{specialChars}})",
        "passwordCommon": "This password is too common. Please choose a more secure password",
        "passwordSequence": "Password should not contain sequential characters",
        "passwordRepeated": "Password should not contain repeated characters",
        "matchField": "Must match {{targetField}}",
        "differentField": "Must be different from {{targetField}}",
        "matchFieldNoContext": "Cannot validate field match without form context",
        "uniqueEmail": "This email address is already in use",
        "uniqueSlug": "This {{entity}} is already taken",
        "invalidSlugFormat": "Slug can only contain lowercase letters, numbers, and hyphens",
        "usernameUnavailable": "This username is already taken",
        "usernameReserved": "This username is reserved and cannot be used",
        "usernameInappropriate": "This username contains inappropriate content",
        "invalidUsernameFormat": "Username can only contain letters, numbers, underscores, and hyphens",
        "usernameTooShort": "Username must be at least {{minLength}} characters long",
        "validationError": "An unexpected error occurred during validation",
        "validationTimeout": "Validation timed out. Please try again.",
        "networkError": "Unable to validate. Please check your connection and try again.",
        "schemaParseError": "The validation schema could not be read",
        "unknownValidator": "Unknown validator: {{validator}}",
        "fallback": {
            "generic": "Invalid value",
        },
    },
}


def interpolate(template: str, params: Mapping[str, Any] | None) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as-is."""
    if not params:
        return template

    def _sub(match: re.Match[str]) -> str:
        value = params.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return _PLACEHOLDER.sub(_sub, template)


class MessageResolver:
    """Resolves message keys against a nested catalog.

    Args:
        messages: Nested catalog; merged over ``DEFAULT_MESSAGES``
        use_defaults: Whether to start from the default catalog
        read_only: Reject later ``update`` calls

    Example:
        ```python
        resolver = MessageResolver({"validation": {"required": "Required!"}})
        resolver("required")
        # 'Required!'
        resolver("minLength", {"min": 8})
        # 'Must be at least 8 characters'
        ```
    """

    def __init__(
        self,
        messages: Mapping[str, Any] | None = None,
        use_defaults: bool = True,
        read_only: bool = False,
    ):
        self._messages: dict[str, Any] = copy.deepcopy(DEFAULT_MESSAGES) if use_defaults else {}
        if messages:
            _deep_merge(self._messages, messages)
        self._read_only = read_only

    @property
    def read_only(self) -> bool:
        return self._read_only

    @classmethod
    def from_file(cls, path: str | Path, use_defaults: bool = True) -> MessageResolver:
        """Load a catalog from a YAML or JSON file."""
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        return cls(data, use_defaults=use_defaults)

    def update(self, messages: Mapping[str, Any]) -> None:
        """Deep-merge more messages into the catalog.

        Raises:
            ConfigurationError: If the resolver is read-only
        """
        if self._read_only:
            raise ConfigurationError(
                "Message resolver is read-only; create a MessageResolver with the overrides instead"
            )
        _deep_merge(self._messages, messages)

    def lookup(self, path: str) -> str | None:
        """Return the raw template at a dotted path, or None."""
        value: Any = self._messages
        for key in path.split("."):
            if isinstance(value, Mapping) and key in value:
                value = value[key]
            else:
                return None
        return value if isinstance(value, str) else None

    def __call__(
        self,
        key: str,
        params: Mapping[str, Any] | None = None,
        context: str | None = None,
    ) -> str:
        candidates = []
        if context:
            candidates.append(f"validation.contexts.{context}.{key}")
        candidates += [f"validation.{key}", f"validation.fallback.{key}", "validation.fallback.generic"]

        for path in candidates:
            template = self.lookup(path)
            if template is not None:
                return interpolate(template, params)

        logger.debug("No message found for key %s", key)
        return key


def _deep_merge(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


# Shared by contexts created without a resolver
default_resolver = MessageResolver(read_only=True)
