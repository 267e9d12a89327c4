"""Schema-driven validation with managed asynchronous validators.

This package provides:

- **Schema**: Immutable, serializable form/field schemas and a fluent builder
- **Registry**: Named validators (sync or async, plain or factory)
- **Engine**: Field and form validation with structured errors
- **Controller**: Timeout, retry/backoff and single-flight cancellation for async validators
- **Debouncer**: Most-recent-wins execution for interactive revalidation

Example:
    ```python
    from dataknobs_validation import (
        SchemaBuilder, ValidationEngine, create_registry_with_builtins, validator,
    )

    engine = ValidationEngine(create_registry_with_builtins())
    schema = (
        SchemaBuilder.create()
        .field("email", [validator("email")], required=True)
        .strip_unknown()
        .build()
    )
    result = await engine.validate_form({"email": "a@b.com", "extra": 1}, schema)
    result.data  # {'email': 'a@b.com'}
    ```
"""

from dataknobs_validation.builder import (
    SchemaBuilder,
    SchemaStats,
    create_partial_schema,
    create_schema,
    create_update_schema,
    define_schema,
    validator,
)
from dataknobs_validation.catalog import (
    VALIDATION_SCHEMAS,
    get_schema_names,
    get_validation_schema,
    has_schema,
)
from dataknobs_validation.config import ValidationSettings, build_engine
from dataknobs_validation.controller import (
    AsyncValidationController,
    AsyncValidationState,
    CancellationToken,
)
from dataknobs_validation.debounce import Debouncer
from dataknobs_validation.engine import ValidationEngine
from dataknobs_validation.exceptions import (
    ConfigurationError,
    NetworkErrorKind,
    NetworkValidationError,
    SchemaNotFoundError,
    SchemaParseError,
    ValidationContractError,
    ValidationFrameworkError,
    ValidatorNotFoundError,
)
from dataknobs_validation.messages import DEFAULT_MESSAGES, MessageResolver
from dataknobs_validation.network import (
    UniquenessClient,
    classify_error,
    register_async_validators,
)
from dataknobs_validation.policy import AsyncPolicy
from dataknobs_validation.registry import (
    RegistryEntry,
    RegistryStats,
    ValidatorMetadata,
    ValidatorRegistration,
    ValidatorRegistry,
)
from dataknobs_validation.result import (
    AsyncValidationResult,
    CancelledValidationResult,
    ValidationContext,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)
from dataknobs_validation.schema import (
    FieldSchema,
    FormSchema,
    ValidationOptions,
    ValidatorSpec,
)
from dataknobs_validation.validators import (
    calculate_password_strength,
    create_registry_with_builtins,
    register_builtin_validators,
)

__version__ = "1.0.0"

__all__ = [
    # Version
    "__version__",
    # Schema
    "ValidatorSpec",
    "FieldSchema",
    "FormSchema",
    "ValidationOptions",
    "SchemaBuilder",
    "SchemaStats",
    "create_schema",
    "define_schema",
    "create_update_schema",
    "create_partial_schema",
    "validator",
    # Predefined schemas
    "VALIDATION_SCHEMAS",
    "get_validation_schema",
    "get_schema_names",
    "has_schema",
    # Results
    "ValidationError",
    "ValidationWarning",
    "ValidationResult",
    "AsyncValidationResult",
    "CancelledValidationResult",
    "ValidationContext",
    # Registry
    "ValidatorRegistry",
    "ValidatorRegistration",
    "ValidatorMetadata",
    "RegistryEntry",
    "RegistryStats",
    "register_builtin_validators",
    "create_registry_with_builtins",
    "calculate_password_strength",
    # Engine and async execution
    "ValidationEngine",
    "AsyncPolicy",
    "AsyncValidationController",
    "AsyncValidationState",
    "CancellationToken",
    "Debouncer",
    # Network
    "UniquenessClient",
    "classify_error",
    "register_async_validators",
    # Messages and configuration
    "MessageResolver",
    "DEFAULT_MESSAGES",
    "ValidationSettings",
    "build_engine",
    # Exceptions
    "ValidationFrameworkError",
    "ConfigurationError",
    "SchemaParseError",
    "SchemaNotFoundError",
    "ValidatorNotFoundError",
    "ValidationContractError",
    "NetworkErrorKind",
    "NetworkValidationError",
]
