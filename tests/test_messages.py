"""Tests for message resolution."""

import json

import pytest

from dataknobs_validation.exceptions import ConfigurationError
from dataknobs_validation.messages import MessageResolver, default_resolver, interpolate
from dataknobs_validation.result import ValidationContext


class TestInterpolate:
    def test_replaces_placeholders(self):
        assert interpolate("At least {{min}} of {{max}}", {"min": 2, "max": 5}) == "At least 2 of 5"

    def test_unknown_placeholders_left_alone(self):
        assert interpolate("Need {{min}} and {{other}}", {"min": 1}) == "Need 1 and {{other}}"

    def test_no_params(self):
        assert interpolate("Plain {{min}}", None) == "Plain {{min}}"


class TestMessageResolver:
    def test_defaults(self):
        assert default_resolver("required") == "This field is required"
        assert default_resolver("minLength", {"min": 8}) == "Must be at least 8 characters"

    def test_fallback_chain(self):
        resolver = MessageResolver({
            "validation": {
                "required": "Required!",
                "contexts": {"signup": {"required": "Tell us your email"}},
                "fallback": {"mystery": "Something is off"},
            }
        })

        assert resolver("required", context="signup") == "Tell us your email"
        assert resolver("required", context="login") == "Required!"
        assert resolver("mystery") == "Something is off"
        assert resolver("neverDefined") == "Invalid value"

    def test_missing_everything_returns_key(self):
        resolver = MessageResolver(use_defaults=False)

        assert resolver("custom") == "custom"

    def test_overrides_do_not_leak_into_defaults(self):
        MessageResolver({"validation": {"required": "Changed"}})

        assert default_resolver("required") == "This field is required"

    def test_update_merges_deeply(self):
        resolver = MessageResolver()
        resolver.update({"validation": {"email": "Bad email"}})

        assert resolver("email") == "Bad email"
        assert resolver("required") == "This field is required"

    def test_shared_default_is_read_only(self):
        assert default_resolver.read_only
        with pytest.raises(ConfigurationError):
            default_resolver.update({"validation": {"required": "Changed"}})

        assert default_resolver("required") == "This field is required"

    def test_read_only_resolver(self):
        resolver = MessageResolver({"validation": {"email": "Bad email"}}, read_only=True)

        assert resolver("email") == "Bad email"
        with pytest.raises(ConfigurationError):
            resolver.update({"validation": {"email": "Other"}})
        assert not MessageResolver().read_only

    def test_lookup(self):
        assert default_resolver.lookup("validation.fallback.generic") == "Invalid value"
        assert default_resolver.lookup("validation.fallback") is None
        assert default_resolver.lookup("nope.nothing") is None

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "messages.yaml"
        path.write_text("validation:\n  required: 'Fill me in'\n")

        assert MessageResolver.from_file(path)("required") == "Fill me in"

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "messages.json"
        path.write_text(json.dumps({"validation": {"email": "Nope"}}))
        resolver = MessageResolver.from_file(path, use_defaults=False)

        assert resolver("email") == "Nope"
        assert resolver("required") == "required"


class TestContextMessages:
    def test_context_name_selects_messages(self):
        resolver = MessageResolver({"validation": {"contexts": {"admin": {"required": "Admin needs this"}}}})
        context = ValidationContext(field_path="name", message_resolver=resolver, context_name="admin")

        error = context.error("required")

        assert error.message == "Admin needs this"
        assert error.field == "name"

    def test_message_key_differs_from_code(self):
        context = ValidationContext(field_path="a")

        error = context.error("custom", {"min": 3}, message_key="minLength")

        assert error.code == "custom"
        assert error.message == "Must be at least 3 characters"
