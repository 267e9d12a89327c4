"""Registry mapping validator type names to executable validators.

Registration is permissive: registering a type that already exists replaces
the previous entry (last write wins) so applications can override built-ins.

Each entry declares its calling convention explicitly. A plain validator is
called as ``validator(value, context)``; a factory is first called with the
spec's ``params`` dict and returns such a validator.

Example:
    ```python
    from dataknobs_validation.registry import ValidatorRegistry

    registry = ValidatorRegistry()
    registry.register("email", email_validator)
    registry.register("minLength", min_length_factory, factory=True)
    registry.register_async("uniqueEmail", unique_email, policy=AsyncPolicy(timeout=8.0))

    validator = registry.bind(ValidatorSpec("minLength", params={"min": 8}))
    ```
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from .exceptions import ValidatorNotFoundError
from .policy import AsyncPolicy
from .schema import ValidatorSpec

Validator = Callable[..., Any]


@dataclass(frozen=True)
class ValidatorMetadata:
    """Descriptive information about a registered validator."""

    description: str | None = None
    parameter_schema: dict[str, Any] | None = None
    examples: tuple[str, ...] = ()
    version: str | None = None
    tags: tuple[str, ...] = ()
    is_async: bool | None = None


@dataclass(frozen=True)
class RegistryEntry:
    """A registered validator and how to call it."""

    type: str
    executable: Validator
    is_async: bool = False
    is_factory: bool = False
    metadata: ValidatorMetadata | None = None
    policy: AsyncPolicy | None = None
    registered_at: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class ValidatorRegistration:
    """One item of a batch registration."""

    type: str
    validator: Validator
    is_async: bool = False
    factory: bool = False
    metadata: ValidatorMetadata | None = None
    policy: AsyncPolicy | None = None


@dataclass(frozen=True)
class RegistryStats:
    total: int
    sync: int
    async_: int
    with_metadata: int


@dataclass
class RegistryCheck:
    """Consistency report produced by ``validate_registry``."""

    is_valid: bool
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RegistrySnapshot:
    entries: dict[str, RegistryEntry]
    timestamp: float


class ValidatorRegistry:
    """Thread-safe table of validator entries keyed by type name.

    Args:
        name: Name of the registry (for logging/debugging)
    """

    def __init__(self, name: str = "validators"):
        self._name = name
        self._entries: dict[str, RegistryEntry] = {}
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    def register(
        self,
        type: str,
        validator: Validator,
        metadata: ValidatorMetadata | None = None,
        factory: bool = False,
    ) -> None:
        """Register a synchronous validator, replacing any existing entry.

        Args:
            type: Validator type name referenced by schemas
            validator: Validator, or factory when ``factory`` is True
            metadata: Optional descriptive metadata
            factory: Whether ``validator`` must be called with params first
        """
        self._put(RegistryEntry(type, validator, False, factory, metadata))

    def register_async(
        self,
        type: str,
        validator: Validator,
        metadata: ValidatorMetadata | None = None,
        factory: bool = False,
        policy: AsyncPolicy | None = None,
    ) -> None:
        """Register an asynchronous validator, replacing any existing entry.

        Async entries are executed through the async controller; ``policy``
        overrides the controller defaults for this validator.
        """
        if metadata is not None:
            metadata = replace(metadata, is_async=True)
        self._put(RegistryEntry(type, validator, True, factory, metadata, policy))

    def register_batch(self, registrations: Iterable[ValidatorRegistration]) -> None:
        """Register several validators at once."""
        with self._lock:
            for reg in registrations:
                if reg.is_async:
                    self.register_async(reg.type, reg.validator, reg.metadata, reg.factory, reg.policy)
                else:
                    self.register(reg.type, reg.validator, reg.metadata, reg.factory)

    def _put(self, entry: RegistryEntry) -> None:
        with self._lock:
            self._entries[entry.type] = entry

    def unregister(self, type: str) -> bool:
        """Remove a validator; returns whether one was registered."""
        with self._lock:
            return self._entries.pop(type, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_entry(self, type: str) -> RegistryEntry | None:
        with self._lock:
            return self._entries.get(type)

    def require(self, type: str) -> RegistryEntry:
        """Get an entry, raising when the type is not registered.

        Raises:
            ValidatorNotFoundError: If the type is not registered
        """
        with self._lock:
            entry = self._entries.get(type)
            if entry is None:
                raise ValidatorNotFoundError(
                    f"Validator not found: {type}",
                    context={"type": type, "registry": self._name, "available": list(self._entries)},
                )
            return entry

    def get(self, type: str) -> Validator | None:
        """Return the registered executable (validator or factory), or None."""
        entry = self.get_entry(type)
        return entry.executable if entry is not None else None

    def has(self, type: str) -> bool:
        with self._lock:
            return type in self._entries

    def is_async(self, type: str) -> bool:
        entry = self.get_entry(type)
        return entry is not None and entry.is_async

    def is_factory(self, type: str) -> bool:
        entry = self.get_entry(type)
        return entry is not None and entry.is_factory

    def get_metadata(self, type: str) -> ValidatorMetadata | None:
        entry = self.get_entry(type)
        return entry.metadata if entry is not None else None

    def list_types(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def sync_types(self) -> list[str]:
        with self._lock:
            return [t for t, e in self._entries.items() if not e.is_async]

    def async_types(self) -> list[str]:
        with self._lock:
            return [t for t, e in self._entries.items() if e.is_async]

    def bind(self, spec: ValidatorSpec, entry: RegistryEntry | None = None) -> Validator:
        """Resolve the callable for ``spec``.

        Factories are called with a fresh copy of ``spec.params`` (an empty
        dict when ``spec.params`` is None); plain validators are returned as-is.

        Raises:
            ValidatorNotFoundError: If the type is not registered
        """
        entry = entry or self.require(spec.type)
        if entry.is_factory:
            return entry.executable(dict(spec.params or {}))
        return entry.executable

    def get_stats(self) -> RegistryStats:
        """Counts used for diagnostics."""
        with self._lock:
            entries = list(self._entries.values())
        async_count = sum(1 for e in entries if e.is_async)
        return RegistryStats(
            total=len(entries),
            sync=len(entries) - async_count,
            async_=async_count,
            with_metadata=sum(1 for e in entries if e.metadata is not None),
        )

    def validate_registry(self) -> RegistryCheck:
        """Report entries whose metadata is missing or disagrees with the entry."""
        check = RegistryCheck(is_valid=True)
        with self._lock:
            entries = list(self._entries.values())
        for entry in entries:
            if entry.metadata is None:
                check.warnings.append(f"Validator '{entry.type}' has no metadata")
                continue
            if entry.metadata.is_async is not None and entry.metadata.is_async != entry.is_async:
                check.issues.append(
                    f"Validator '{entry.type}' async flag mismatch: registered as "
                    f"{'async' if entry.is_async else 'sync'}, metadata says "
                    f"{'async' if entry.metadata.is_async else 'sync'}"
                )
        check.is_valid = not check.issues
        return check

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(entries=dict(self._entries), timestamp=time.time())

    def restore(self, snapshot: RegistrySnapshot) -> None:
        with self._lock:
            self._entries = dict(snapshot.entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, type: str) -> bool:
        return self.has(type)

    def __iter__(self):
        return iter(self.list_types())

    def __repr__(self) -> str:
        return f"ValidatorRegistry(name={self._name!r}, size={len(self)})"


__all__ = [
    "Validator",
    "ValidatorMetadata",
    "RegistryEntry",
    "ValidatorRegistration",
    "RegistryStats",
    "RegistryCheck",
    "RegistrySnapshot",
    "ValidatorRegistry",
]
