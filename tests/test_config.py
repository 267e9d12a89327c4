"""Tests for settings loading and engine assembly."""

import json

import pytest

from dataknobs_validation.config import ValidationSettings, build_engine
from dataknobs_validation.exceptions import ConfigurationError
from dataknobs_validation.network import UniquenessClient
from dataknobs_validation.policy import AsyncPolicy
from dataknobs_validation.schema import FieldSchema


class TestValidationSettings:
    def test_defaults(self):
        settings = ValidationSettings()

        assert settings.policy == AsyncPolicy()
        assert settings.debounce_ms is None
        assert settings.unknown_validators == "warn"

    def test_from_dict_unwraps_validation_key(self):
        settings = ValidationSettings.from_dict({
            "validation": {
                "policy": {"timeout": 5.0, "maxRetries": 1},
                "debounceMs": 200,
                "unknown_validators": "strict",
                "service": {"base_url": "http://localhost:9000"},
            }
        })

        assert settings.policy.timeout == 5.0
        assert settings.policy.max_retries == 1
        assert settings.debounce_ms == 200
        assert settings.unknown_validators == "strict"
        assert settings.service == {"base_url": "http://localhost:9000"}

    @pytest.mark.parametrize(
        "data",
        [
            {"colour": "blue"},
            {"unknown_validators": "ignore"},
            {"debounce_ms": -1},
            {"policy": {"timeout": 0}},
            {"policy": {"retries": 3}},
        ],
    )
    def test_invalid_settings(self, data):
        with pytest.raises(ConfigurationError):
            ValidationSettings.from_dict(data)

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "validation.yaml"
        path.write_text("validation:\n  debounce_ms: 150\n  policy:\n    max_retries: 0\n")

        settings = ValidationSettings.from_file(path)

        assert settings.debounce_ms == 150
        assert settings.policy.max_retries == 0

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "validation.json"
        path.write_text(json.dumps({"unknown_validators": "strict"}))

        assert ValidationSettings.from_file(path).unknown_validators == "strict"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ValidationSettings.from_file(tmp_path / "absent.yaml")

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ValidationSettings.from_file(path)


class TestEnvironmentOverrides:
    def test_overrides(self):
        settings = ValidationSettings.from_env({
            "DATAKNOBS_VALIDATION_TIMEOUT": "2.5",
            "DATAKNOBS_VALIDATION_MAX_RETRIES": "0",
            "DATAKNOBS_VALIDATION_EXPONENTIAL_BACKOFF": "0",
            "DATAKNOBS_VALIDATION_CANCEL_PREVIOUS": "yes",
            "DATAKNOBS_VALIDATION_DEBOUNCE_MS": "300",
            "DATAKNOBS_VALIDATION_UNKNOWN_VALIDATORS": "STRICT",
            "DATAKNOBS_VALIDATION_SERVICE_URL": "http://svc",
            "UNRELATED": "1",
        })

        assert settings.policy.timeout == 2.5
        assert settings.policy.max_retries == 0
        assert settings.policy.exponential_backoff is False
        assert settings.policy.cancel_previous is True
        assert settings.debounce_ms == 300
        assert settings.unknown_validators == "strict"
        assert settings.service == {"base_url": "http://svc"}

    def test_overrides_layer_over_existing_settings(self):
        base = ValidationSettings(policy=AsyncPolicy(timeout=9.0, max_retries=1), service={"base_url": "a", "auth_token": "t"})

        settings = base.with_env_overrides({
            "DATAKNOBS_VALIDATION_RETRY_DELAY": "0.5",
            "DATAKNOBS_VALIDATION_SERVICE_URL": "b",
        })

        assert settings.policy == AsyncPolicy(timeout=9.0, max_retries=1, retry_delay=0.5)
        assert settings.service == {"base_url": "b", "auth_token": "t"}
        assert base.service["base_url"] == "a"

    def test_no_overrides_returns_same_settings(self):
        settings = ValidationSettings()

        assert settings.with_env_overrides({}) is settings

    @pytest.mark.parametrize(
        "key, value",
        [("TIMEOUT", "soon"), ("MAX_RETRIES", "2.5"), ("EXPONENTIAL_BACKOFF", "maybe"), ("DEBOUNCE_MS", "x")],
    )
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigurationError):
            ValidationSettings.from_env({f"DATAKNOBS_VALIDATION_{key}": value})

    def test_invalid_policy_value(self):
        with pytest.raises(ConfigurationError):
            ValidationSettings.from_env({"DATAKNOBS_VALIDATION_TIMEOUT": "-1"})


class TestBuildEngine:
    def test_defaults(self):
        engine = build_engine()

        assert engine.registry.has("email")
        assert not engine.registry.has("uniqueEmail")
        assert engine.debouncer is None
        assert engine.controller.policy == AsyncPolicy()

    def test_from_settings(self, tmp_path):
        messages = tmp_path / "messages.yaml"
        messages.write_text("validation:\n  required: 'From file'\n  email: 'Email from file'\n")
        settings = ValidationSettings(
            policy=AsyncPolicy(timeout=2.0),
            debounce_ms=100,
            messages={"validation": {"email": "Inline email"}},
            messages_file=str(messages),
            service={"base_url": "http://localhost:9000"},
        )

        engine = build_engine(settings)
        context = engine.create_context()

        assert engine.controller.policy.timeout == 2.0
        assert engine.debouncer.debounce_ms == 100
        assert engine.debouncer.controller is engine.controller
        assert engine.registry.is_async("uniqueEmail")
        assert engine.registry.is_factory("uniqueSlug")
        assert context.message("required") == "From file"
        assert context.message("email") == "Inline email"

    def test_explicit_client(self, registry):
        client = UniquenessClient("http://svc")

        engine = build_engine(registry=registry, client=client)

        assert engine.registry is registry
        assert registry.get_entry("usernameAvailability").policy.timeout == 5.0

    @pytest.mark.asyncio
    async def test_strict_engine_reports_unknown(self):
        engine = build_engine(ValidationSettings(unknown_validators="strict"))

        result = await engine.validate_field("x", FieldSchema(validators=("nope",)))

        assert result.errors[0].code == "unknownValidator"
