"""Network-backed uniqueness validators and fault classification.

``UniquenessClient`` talks to a JSON validation service over aiohttp. The
async validators built on it raise classified ``NetworkValidationError``
faults for non-2xx responses and let connection failures propagate, so the
async controller can decide whether to retry.

The expected API contract is:
- POST /validate/unique-email          -> {"unique": bool}
- POST /validate/unique-slug           -> {"unique": bool}
- POST /validate/username-availability -> {"available": bool, "reserved": bool, "inappropriate": bool}

Example:
    ```python
    client = UniquenessClient(base_url="https://api.example.com")
    await client.initialize()

    registry = create_registry_with_builtins()
    register_async_validators(registry, client)
    ```
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import aiohttp

from .exceptions import NetworkErrorKind, NetworkValidationError
from .policy import AsyncPolicy
from .registry import ValidatorMetadata, ValidatorRegistry
from .result import ValidationContext, ValidationResult

logger = logging.getLogger(__name__)

UNIQUE_EMAIL_POLICY = AsyncPolicy(timeout=8.0, max_retries=2, retry_delay=1.0)
UNIQUE_SLUG_POLICY = AsyncPolicy(timeout=6.0, max_retries=2, retry_delay=0.8)
USERNAME_POLICY = AsyncPolicy(timeout=5.0, max_retries=2, retry_delay=1.0)

ENTITY_NAMES = {"room": "room name", "episode": "episode title"}

_USERNAME_FORMAT = re.compile(r"^[a-z0-9_-]+$")
_SLUG_FORMAT = re.compile(r"^[a-z0-9-]+$")
USERNAME_MIN_LENGTH = 3


def classify_error(error: BaseException) -> NetworkValidationError | None:
    """Map an exception to a classified network fault.

    Returns:
        The classified fault, or None when the exception is not network related
    """
    if isinstance(error, NetworkValidationError):
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return NetworkValidationError(str(error) or "Request timed out", NetworkErrorKind.TIMEOUT)
    if isinstance(error, aiohttp.ClientResponseError):
        return NetworkValidationError.from_status(error.status, error.message or None)
    if isinstance(error, (aiohttp.ClientConnectionError, ConnectionError)):
        return NetworkValidationError(str(error) or "Connection failed", NetworkErrorKind.CONNECTION_ERROR)
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_slug(value: str) -> str:
    """Lowercase, hyphenate whitespace and drop characters invalid in a slug."""
    slug = value.strip().lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class UniquenessClient:
    """HTTP client for the uniqueness validation service.

    Args:
        base_url: Base URL of the validation service
        auth_token: Bearer token for authentication (optional)
        auth_header: Custom auth header name (default: "Authorization")
        timeout: Transport timeout in seconds; the controller policy
            normally bounds attempts more tightly
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        auth_header: str = "Authorization",
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._auth_header = auth_header
        self._timeout = timeout

        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> UniquenessClient:
        """Create a client from a configuration dictionary.

        Args:
            config: Configuration with keys:
                - base_url (required): Service base URL
                - auth_token: Bearer token
                - auth_header: Custom auth header name
                - timeout: Transport timeout
        """
        return cls(
            base_url=config["base_url"],
            auth_token=config.get("auth_token"),
            auth_header=config.get("auth_header", "Authorization"),
            timeout=config.get("timeout", 30.0),
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_initialized(self) -> bool:
        return self._session is not None

    async def initialize(self) -> None:
        """Create the aiohttp session."""
        if self._session is not None:
            return

        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._auth_token:
            headers[self._auth_header] = f"Bearer {self._auth_token}"

        self._session = aiohttp.ClientSession(
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )
        logger.info("UniquenessClient initialized: %s", self._base_url)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("UniquenessClient closed")

    async def __aenter__(self) -> UniquenessClient:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON response.

        Raises:
            NetworkValidationError: For non-2xx responses, classified by status
            RuntimeError: If the client has not been initialized
        """
        if self._session is None:
            raise RuntimeError("UniquenessClient not initialized. Call initialize() first.")

        url = f"{self._base_url}/{path.lstrip('/')}"
        async with self._session.post(url, json=payload) as response:
            await self._check_response(response)
            return await response.json()

    async def _check_response(self, response: Any) -> None:
        if response.status >= 400:
            text = await response.text()
            logger.warning("Validation request failed: HTTP %s: %s", response.status, text)
            raise NetworkValidationError.from_status(response.status, f"HTTP {response.status}: {text}")

    async def is_email_unique(self, email: str, exclude_id: Any = None) -> bool:
        data = await self.post_json("validate/unique-email", {"email": email, "excludeId": exclude_id})
        return bool(data.get("unique"))

    async def is_slug_unique(self, slug: str, entity_type: str, exclude_id: Any = None) -> bool:
        data = await self.post_json(
            "validate/unique-slug",
            {"slug": slug, "entityType": entity_type, "excludeId": exclude_id},
        )
        return bool(data.get("unique"))

    async def check_username(self, username: str, exclude_id: Any = None) -> dict[str, Any]:
        return await self.post_json(
            "validate/username-availability",
            {"username": username, "excludeId": exclude_id},
        )


def unique_email_validator(client: UniquenessClient):
    """Build a validator that rejects email addresses already in use."""

    async def validate(value: Any, context: ValidationContext) -> ValidationResult:
        if _is_blank(value):
            return ValidationResult.ok(value)
        email = str(value).strip().lower()
        if not await client.is_email_unique(email, context.form_data.get("id")):
            return ValidationResult.fail([context.error("uniqueEmail", {"email": email})])
        return ValidationResult.ok(email)

    return validate


def unique_slug_validator(client: UniquenessClient, entity_type: str):
    """Build a validator that normalizes a slug and checks it is unused for ``entity_type``."""
    entity_name = ENTITY_NAMES.get(entity_type, entity_type)

    async def validate(value: Any, context: ValidationContext) -> ValidationResult:
        if _is_blank(value):
            return ValidationResult.ok(value)
        slug = normalize_slug(str(value))
        if not _SLUG_FORMAT.match(slug):
            return ValidationResult.fail([context.error("invalidSlugFormat", {"slug": slug})])
        if not await client.is_slug_unique(slug, entity_type, context.form_data.get("id")):
            return ValidationResult.fail([
                context.error("uniqueSlug", {"slug": slug, "entityType": entity_type, "entity": entity_name})
            ])
        return ValidationResult.ok(slug)

    return validate


def unique_slug_factory(client: UniquenessClient):
    """Registry factory: ``{"entity": "room"}`` -> slug validator."""

    def factory(params: dict[str, Any]):
        entity = params.get("entity", params.get("entityType", "room"))
        return unique_slug_validator(client, entity)

    return factory


def username_availability_validator(client: UniquenessClient):
    """Build a validator checking username format, length and availability."""

    async def validate(value: Any, context: ValidationContext) -> ValidationResult:
        if _is_blank(value):
            return ValidationResult.ok(value)
        username = str(value).strip().lower()

        if not _USERNAME_FORMAT.match(username):
            return ValidationResult.fail([context.error("invalidUsernameFormat", {"username": username})])
        if len(username) < USERNAME_MIN_LENGTH:
            return ValidationResult.fail([
                context.error("usernameTooShort", {"username": username, "minLength": USERNAME_MIN_LENGTH})
            ])

        data = await client.check_username(username, context.form_data.get("id"))
        errors = []
        if not data.get("available"):
            errors.append(context.error("usernameUnavailable", {"username": username}))
        if data.get("reserved"):
            errors.append(context.error("usernameReserved", {"username": username}))
        if data.get("inappropriate"):
            errors.append(context.error("usernameInappropriate", {"username": username}))
        if errors:
            return ValidationResult.fail(errors)
        return ValidationResult.ok(username)

    return validate


def register_async_validators(registry: ValidatorRegistry, client: UniquenessClient) -> None:
    """Register the network-backed validators with their default policies."""
    registry.register_async(
        "uniqueEmail",
        unique_email_validator(client),
        ValidatorMetadata(
            description="Validates that an email address is not already in use",
            examples=('{"type": "uniqueEmail", "async": true}',),
        ),
        policy=UNIQUE_EMAIL_POLICY,
    )
    registry.register_async(
        "uniqueSlug",
        unique_slug_factory(client),
        ValidatorMetadata(
            description="Validates that a slug is unique for the specified entity type",
            parameter_schema={"entity": '"room" | "episode"'},
            examples=(
                '{"type": "uniqueSlug", "async": true, "params": {"entity": "room"}}',
                '{"type": "uniqueSlug", "async": true, "params": {"entity": "episode"}}',
            ),
        ),
        factory=True,
        policy=UNIQUE_SLUG_POLICY,
    )
    for entity in ("room", "episode"):
        registry.register_async(
            f"unique{entity.capitalize()}Slug",
            unique_slug_validator(client, entity),
            ValidatorMetadata(description=f"Validates that a {entity} slug is unique"),
            policy=UNIQUE_SLUG_POLICY,
        )
    registry.register_async(
        "usernameAvailability",
        username_availability_validator(client),
        ValidatorMetadata(description="Validates username availability and appropriateness"),
        policy=USERNAME_POLICY,
    )


__all__ = [
    "classify_error",
    "normalize_slug",
    "UniquenessClient",
    "unique_email_validator",
    "unique_slug_validator",
    "unique_slug_factory",
    "username_availability_validator",
    "register_async_validators",
    "UNIQUE_EMAIL_POLICY",
    "UNIQUE_SLUG_POLICY",
    "USERNAME_POLICY",
]
