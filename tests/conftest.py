"""Shared fixtures for dataknobs_validation tests."""

import pytest

from dataknobs_validation.controller import AsyncValidationController
from dataknobs_validation.engine import ValidationEngine
from dataknobs_validation.policy import AsyncPolicy
from dataknobs_validation.result import ValidationContext
from dataknobs_validation.validators import create_registry_with_builtins


@pytest.fixture
def registry():
    """Registry with the built-in validators."""
    return create_registry_with_builtins("test")


@pytest.fixture
def fast_policy():
    """Policy with delays small enough for tests."""
    return AsyncPolicy(timeout=1.0, max_retries=2, retry_delay=0.01, max_retry_delay=0.05)


@pytest.fixture
def controller(fast_policy):
    return AsyncValidationController(fast_policy)


@pytest.fixture
def engine(registry, controller):
    return ValidationEngine(registry, controller=controller)


@pytest.fixture
def make_context():
    """Factory for per-field contexts."""

    def _make(field_path="email", form_data=None, **kwargs):
        return ValidationContext(form_data=form_data or {}, field_path=field_path, **kwargs)

    return _make
