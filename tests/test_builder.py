"""Tests for the fluent schema builder."""

from dataclasses import replace

import pytest

from dataknobs_validation.builder import (
    SchemaBuilder,
    create_partial_schema,
    create_schema,
    create_update_schema,
    define_schema,
    validator,
)
from dataknobs_validation.catalog import get_schema_names, get_validation_schema, has_schema
from dataknobs_validation.exceptions import SchemaNotFoundError, SchemaParseError
from dataknobs_validation.schema import FieldSchema, FormSchema, ValidationOptions, ValidatorSpec


@pytest.fixture
def signup():
    return (
        SchemaBuilder.create()
        .field("email", ["required", validator("email")], required=True)
        .field("username", [validator("usernameAvailability", is_async=True)], depends_on=["email"])
    )


class TestSchemaBuilder:
    def test_build(self, signup):
        schema = signup.build()

        assert list(schema.fields) == ["email", "username"]
        assert schema.fields["email"].validators == (ValidatorSpec("required"), ValidatorSpec("email"))
        assert schema.fields["email"].required is True
        assert schema.fields["username"].depends_on == ("email",)
        assert schema.options is None

    def test_built_schema_is_isolated_from_builder(self, signup):
        schema = signup.build()

        signup.field("extra", []).abort_early()

        assert "extra" not in schema.fields
        assert schema.options is None

    def test_field_replaces_existing(self, signup):
        schema = signup.field("email", ["email"]).build()

        assert schema.fields["email"].validators == (ValidatorSpec("email"),)
        assert schema.fields["email"].required is None
        assert list(schema.fields) == ["email", "username"]

    def test_required_and_depends_on_create_fields(self):
        schema = SchemaBuilder.create().required("name").depends_on("name", ["first"]).build()

        assert schema.fields["name"] == FieldSchema(required=True, depends_on=("first",))

    def test_option_shortcuts_merge(self):
        schema = (
            create_schema()
            .abort_early()
            .strip_unknown()
            .debounce(150)
            .options({"abortEarly": False})
            .build()
        )

        assert schema.options == ValidationOptions(abort_early=False, strip_unknown=True, debounce_ms=150)

    def test_options_object_and_keywords(self):
        schema = SchemaBuilder.create().options(ValidationOptions(allow_unknown=True), debounce_ms=20).build()

        assert schema.options == ValidationOptions(allow_unknown=True, debounce_ms=20)

    def test_form_validators(self):
        schema = (
            SchemaBuilder.create()
            .form_validator("one")
            .form_validator({"type": "two", "params": {"x": 1}})
            .build()
        )

        assert [v.type for v in schema.form_validators] == ["one", "two"]
        assert schema.form_validators[1].params == {"x": 1}

    def test_serialize_round_trip(self, signup):
        text = signup.abort_early().serialize()

        assert SchemaBuilder.deserialize(text) == signup.build()

    def test_deserialize_invalid(self):
        with pytest.raises(SchemaParseError):
            SchemaBuilder.deserialize("{")

    def test_clone_is_independent(self, signup):
        copy = signup.clone()
        copy.remove_field("email")

        assert signup.has_field("email")
        assert not copy.has_field("email")

    def test_from_schema(self, signup):
        schema = signup.build()

        assert SchemaBuilder.from_schema(schema).build() == schema

    def test_merge(self, signup):
        other = (
            SchemaBuilder.create()
            .field("email", ["email"])
            .field("age", [validator("min", {"min": 18})])
            .form_validator("formCheck")
            .strip_unknown()
            .build()
        )

        schema = signup.form_validator("first").abort_early().merge(other).build()

        assert list(schema.fields) == ["email", "username", "age"]
        assert schema.fields["email"].validators == (ValidatorSpec("email"),)
        assert [v.type for v in schema.form_validators] == ["first", "formCheck"]
        assert schema.options == ValidationOptions(abort_early=True, strip_unknown=True)

    def test_merge_builder(self, signup):
        schema = SchemaBuilder.create().merge(signup).build()

        assert schema == signup.build()

    def test_field_editing(self, signup):
        signup.add_validators("email", [validator("maxLength", {"max": 50})])
        signup.remove_validators("email", ["required"])
        signup.update_field("username", lambda f: replace(f, required=True))
        signup.update_field("missing", lambda f: replace(f, required=True))

        assert [v.type for v in signup.get_field("email").validators] == ["email", "maxLength"]
        assert signup.get_field("username").required is True
        assert signup.get_field("missing") is None

    def test_stats(self, signup):
        stats = signup.form_validator("formCheck").get_stats()

        assert stats.field_count == 2
        assert stats.required_field_count == 1
        assert stats.total_validators == 3
        assert stats.form_validator_count == 1
        assert stats.async_validator_count == 1
        assert stats.has_options is False


class TestDefineSchema:
    def test_define_schema(self):
        schema = define_schema({
            "fields": {
                "password": {"validators": [{"type": "password", "params": {"minLength": 12}}], "required": True},
                "confirm": {"validators": [{"type": "matchField", "params": {"field": "password"}}]},
            },
            "formValidators": ["check"],
            "options": {"abortEarly": True},
        })

        assert isinstance(schema, FormSchema)
        assert schema.fields["password"].validators[0].params == {"minLength": 12}
        assert schema.form_validators == (ValidatorSpec("check"),)
        assert schema.options.abort_early is True


@pytest.fixture
def account():
    return (
        SchemaBuilder.create()
        .field("email", ["required", "email"], required=True)
        .field("password", [validator("password")], required=True)
        .field("confirm", [validator("matchField", {"field": "password"})], required=True, depends_on=["password"])
        .field("bio", [validator("maxLength", {"max": 200})])
        .form_validator(validator("matchFields", {"field": "confirm", "target": "password"}))
        .options(abort_early=True, debounce_ms=150)
        .build()
    )


class TestDerivedSchemas:
    def test_update_schema_makes_fields_optional(self, account):
        schema = create_update_schema(account)

        assert [f.required for f in schema.fields.values()] == [False, False, False, False]
        assert schema.fields["email"].validators == account.fields["email"].validators
        assert schema.fields["confirm"].depends_on == ("password",)
        assert schema.form_validators == account.form_validators
        assert schema.options == account.options

    def test_update_schema_keeps_listed_fields_required(self, account):
        schema = create_update_schema(account, required_fields=["email"])

        assert schema.fields["email"].required is True
        assert schema.fields["password"].required is False
        assert account.fields["password"].required is True

    def test_partial_schema(self, account):
        schema = create_partial_schema(account, ["confirm", "email", "missing"])

        assert list(schema.fields) == ["confirm", "email"]
        assert schema.fields["confirm"].depends_on == ()
        assert schema.fields["email"].required is True
        assert schema.form_validators == ()
        assert schema.options == account.options

    def test_partial_schema_keeps_dependencies_in_subset(self, account):
        schema = create_partial_schema(account, ["password", "confirm"])

        assert schema.fields["confirm"].depends_on == ("password",)
        assert schema.fields["password"].depends_on is None


class TestCatalog:
    def test_names(self):
        assert get_schema_names() == [
            "userRegistration",
            "roomCreation",
            "guestInvite",
            "guestInvitation",
            "login",
            "passwordReset",
            "passwordChange",
        ]
        assert has_schema("login")
        assert not has_schema("episodeUpload")

    def test_lookup(self):
        login = get_validation_schema("login")

        assert list(login.fields) == ["email", "password", "rememberMe"]
        assert login.options == ValidationOptions(abort_early=True, strip_unknown=True, debounce_ms=200)

    def test_unknown_name(self):
        with pytest.raises(SchemaNotFoundError) as exc_info:
            get_validation_schema("nope")

        assert exc_info.value.context["name"] == "nope"
        assert "login" in exc_info.value.context["available"]

    def test_registration_schema(self):
        schema = get_validation_schema("userRegistration")
        stats = SchemaBuilder.from_schema(schema).get_stats()

        assert stats.required_field_count == 4
        assert stats.async_validator_count == 1
        assert schema.fields["confirmPassword"].depends_on == ("password",)
        assert schema.form_validators[0].type == "matchFields"

    def test_schemas_serialize(self):
        for name in get_schema_names():
            schema = get_validation_schema(name)
            assert FormSchema.from_json(schema.to_json()) == schema
