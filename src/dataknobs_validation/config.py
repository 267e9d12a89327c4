"""Settings loading and engine assembly.

Settings come from a dict, a YAML/JSON file, or ``DATAKNOBS_VALIDATION_*``
environment variables layered over either.

Example configuration file:
    ```yaml
    validation:
      unknown_validators: strict
      debounce_ms: 300
      policy:
        timeout: 5.0
        max_retries: 2
      service:
        base_url: https://api.example.com
      messages:
        validation:
          required: "Please fill in this field"
    ```

Environment variables:
    - DATAKNOBS_VALIDATION_TIMEOUT, _MAX_RETRIES, _RETRY_DELAY,
      _EXPONENTIAL_BACKOFF, _MAX_RETRY_DELAY, _CANCEL_PREVIOUS -> policy
    - DATAKNOBS_VALIDATION_DEBOUNCE_MS
    - DATAKNOBS_VALIDATION_UNKNOWN_VALIDATORS (warn | strict)
    - DATAKNOBS_VALIDATION_MESSAGES_FILE
    - DATAKNOBS_VALIDATION_SERVICE_URL
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .controller import AsyncValidationController
from .debounce import Debouncer
from .engine import UNKNOWN_VALIDATOR_POLICIES, ValidationEngine
from .exceptions import ConfigurationError
from .messages import MessageResolver
from .network import UniquenessClient, register_async_validators
from .policy import AsyncPolicy
from .registry import ValidatorRegistry
from .validators import create_registry_with_builtins

logger = logging.getLogger(__name__)

ENV_PREFIX = "DATAKNOBS_VALIDATION_"


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1", "on"):
        return True
    if lowered in ("false", "no", "0", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


_POLICY_ENV = {
    "TIMEOUT": ("timeout", float),
    "MAX_RETRIES": ("max_retries", int),
    "RETRY_DELAY": ("retry_delay", float),
    "EXPONENTIAL_BACKOFF": ("exponential_backoff", _parse_bool),
    "MAX_RETRY_DELAY": ("max_retry_delay", float),
    "CANCEL_PREVIOUS": ("cancel_previous", _parse_bool),
}


@dataclass
class ValidationSettings:
    """Configuration for assembling a validation engine.

    Attributes:
        policy: Default async policy for validators registered without one
        debounce_ms: Quiet window for interactive async validation; None disables debouncing
        unknown_validators: ``"warn"`` or ``"strict"``
        messages: Message catalog merged over the defaults
        messages_file: YAML/JSON catalog file merged over the defaults
        service: ``UniquenessClient`` configuration; enables the network validators
    """

    policy: AsyncPolicy = field(default_factory=AsyncPolicy)
    debounce_ms: int | None = None
    unknown_validators: str = "warn"
    messages: dict[str, Any] = field(default_factory=dict)
    messages_file: str | None = None
    service: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.unknown_validators not in UNKNOWN_VALIDATOR_POLICIES:
            raise ConfigurationError(
                f"unknown_validators must be one of {UNKNOWN_VALIDATOR_POLICIES}",
                context={"unknown_validators": self.unknown_validators},
            )
        if self.debounce_ms is not None and self.debounce_ms < 0:
            raise ConfigurationError("debounce_ms cannot be negative", context={"debounce_ms": self.debounce_ms})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidationSettings:
        """Build settings from a dict; a top-level ``validation`` key is unwrapped."""
        if "validation" in data and isinstance(data["validation"], Mapping):
            data = data["validation"]
        known = {"policy", "debounce_ms", "debounceMs", "unknown_validators", "messages", "messages_file", "service"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings: {sorted(unknown)}", context={"known": sorted(known)})

        policy = data.get("policy")
        return cls(
            policy=AsyncPolicy.from_dict(policy) if policy else AsyncPolicy(),
            debounce_ms=data.get("debounce_ms", data.get("debounceMs")),
            unknown_validators=data.get("unknown_validators", "warn"),
            messages=dict(data.get("messages") or {}),
            messages_file=data.get("messages_file"),
            service=dict(data["service"]) if data.get("service") else None,
        )

    @classmethod
    def from_file(cls, path: str | Path) -> ValidationSettings:
        """Load settings from a YAML or JSON file."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Settings file not found: {path}", context={"path": str(path)})
        with path.open(encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError("Settings file must contain a mapping", context={"path": str(path)})
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ValidationSettings:
        """Defaults with environment overrides applied."""
        return cls().with_env_overrides(environ)

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> ValidationSettings:
        """Return a copy with ``DATAKNOBS_VALIDATION_*`` variables applied."""
        environ = os.environ if environ is None else environ
        policy_overrides: dict[str, Any] = {}
        changes: dict[str, Any] = {}

        for key, raw in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            name = key[len(ENV_PREFIX):]
            try:
                if name in _POLICY_ENV:
                    attr, convert = _POLICY_ENV[name]
                    policy_overrides[attr] = convert(raw)
                elif name == "DEBOUNCE_MS":
                    changes["debounce_ms"] = int(raw) if raw.strip() else None
                elif name == "UNKNOWN_VALIDATORS":
                    changes["unknown_validators"] = raw.strip().lower()
                elif name == "MESSAGES_FILE":
                    changes["messages_file"] = raw
                elif name == "SERVICE_URL":
                    changes["service"] = {**(self.service or {}), "base_url": raw}
                else:
                    logger.debug("Ignoring unrecognized environment variable %s", key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {key}: {raw!r}", context={"variable": key, "error": str(e)}
                ) from e

        if policy_overrides:
            changes["policy"] = self.policy.merge(policy_overrides)
        return replace(self, **changes) if changes else self

    def message_resolver(self) -> MessageResolver:
        """Resolver built from ``messages_file`` and ``messages`` (the latter wins)."""
        resolver = MessageResolver.from_file(self.messages_file) if self.messages_file else MessageResolver()
        if self.messages:
            resolver.update(self.messages)
        return resolver


def build_engine(
    settings: ValidationSettings | None = None,
    registry: ValidatorRegistry | None = None,
    client: UniquenessClient | None = None,
) -> ValidationEngine:
    """Assemble registry, controller, debouncer and engine from settings.

    Args:
        settings: Settings to use (defaults when None)
        registry: Registry to populate; a new one with the built-ins when None
        client: Uniqueness client; created from ``settings.service`` when None.
            Its session still has to be initialized by the caller.
    """
    settings = settings or ValidationSettings()
    if registry is None:
        registry = create_registry_with_builtins()
    if client is None and settings.service:
        client = UniquenessClient.from_config(settings.service)
    if client is not None:
        register_async_validators(registry, client)

    controller = AsyncValidationController(settings.policy)
    debouncer = Debouncer(controller, settings.debounce_ms) if settings.debounce_ms else None
    logger.debug(
        "Built validation engine: %d validators, debounce=%s, unknown=%s",
        len(registry), settings.debounce_ms, settings.unknown_validators,
    )
    return ValidationEngine(
        registry,
        controller=controller,
        debouncer=debouncer,
        message_resolver=settings.message_resolver(),
        unknown_validators=settings.unknown_validators,
    )


__all__ = ["ENV_PREFIX", "ValidationSettings", "build_engine"]
