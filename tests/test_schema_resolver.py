"""Tests for schema descriptor resolution and the entity registry."""

from datetime import date

import pytest

from crudgen.exceptions.domain import ConfigurationError
from crudgen.models import (
    EntityConfig,
    EntitySchema,
    FieldOverrides,
    SchemaField,
    SemanticType,
    UIType,
)
from crudgen.registry import EntityRegistry
from crudgen.services.schema_resolver import (
    derive_field_names,
    humanize,
    infer_ui_type,
    resolve,
    resolve_defaults,
)

from tests.utils import category_config, product_config, product_schema

# ===================================================================
# UI type inference
# ===================================================================


class TestInferUIType:
    @pytest.mark.parametrize(
        ("name", "schema_field", "expected"),
        [
            ("title", SchemaField(), UIType.text),
            ("status", SchemaField(enum=("a", "b")), UIType.select),
            ("email", SchemaField(), UIType.email),
            ("password", SchemaField(), UIType.password),
            ("short_description", SchemaField(), UIType.textarea),
            ("content", SchemaField(), UIType.textarea),
            ("price", SchemaField(type=SemanticType.number), UIType.number),
            ("active", SchemaField(type=SemanticType.boolean), UIType.checkbox),
            ("published_on", SchemaField(type=SemanticType.date), UIType.date),
            ("category_id", SchemaField(type=SemanticType.reference), UIType.select),
            ("tag_id", SchemaField(type=SemanticType.array_reference), UIType.multiselect),
            ("roles", SchemaField(type=SemanticType.array_text, enum=("a",)), UIType.multiselect),
            ("product_images", SchemaField(type=SemanticType.array_text), UIType.file),
            ("photos", SchemaField(type=SemanticType.array_text), UIType.file),
            ("keywords", SchemaField(type=SemanticType.array_text), UIType.tags),
        ],
    )
    def test_semantic_defaults(self, name, schema_field, expected):
        assert infer_ui_type(name, schema_field) == expected

    def test_enum_wins_over_imagery_for_arrays(self):
        field = SchemaField(type=SemanticType.array_text, enum=("x", "y"))
        assert infer_ui_type("gallery_images", field) == UIType.multiselect

    def test_email_match_is_exact(self):
        assert infer_ui_type("backup_email", SchemaField()) == UIType.text


class TestResolve:
    def test_precedence_override_then_hint_then_default(self):
        schema = EntitySchema(
            {
                "notes": SchemaField(ui_hint=UIType.textarea),
                "summary": SchemaField(ui_hint=UIType.textarea),
                "plain": SchemaField(),
            }
        )
        overrides = FieldOverrides(types={"summary": UIType.text})

        descriptors = resolve(schema, None, overrides)

        assert descriptors["notes"].type == UIType.textarea
        assert descriptors["summary"].type == UIType.text
        assert descriptors["plain"].type == UIType.text

    def test_contradicting_override_is_rejected(self):
        schema = EntitySchema({"active": SchemaField(type=SemanticType.boolean)})
        overrides = FieldOverrides(types={"active": UIType.text})

        with pytest.raises(ConfigurationError, match="active"):
            resolve(schema, None, overrides)

    def test_contradicting_schema_hint_is_rejected(self):
        schema = EntitySchema({"price": SchemaField(type=SemanticType.number, ui_hint=UIType.email)})

        with pytest.raises(ConfigurationError):
            resolve(schema)

    def test_keys_are_subset_of_schema(self):
        descriptors = resolve(product_schema(), ["name", "missing", "price"])
        assert list(descriptors) == ["name", "price"]

    def test_system_fields_are_excluded(self):
        names = derive_field_names(product_schema())
        for system in ("created_by", "updated_by", "tenant_id"):
            assert system not in names
        assert names[:3] == ["name", "description", "price"]

    def test_labels_placeholders_and_help_text(self):
        descriptors = resolve(product_schema())

        assert descriptors["category_id"].label == "Category id"
        assert descriptors["manual"].label == "User manual"
        assert descriptors["release_date"].placeholder == "Enter release date"
        assert descriptors["name"].help_text == "This field is required"
        assert descriptors["description"].help_text == ""

    def test_label_override(self):
        overrides = FieldOverrides(labels={"name": "Product name"})
        descriptors = resolve(product_schema(), ["name"], overrides)
        assert descriptors["name"].label == "Product name"

    def test_enum_options_have_capitalized_labels(self):
        descriptors = resolve(product_schema(), ["status"])
        options = [(o.value, o.label) for o in descriptors["status"].options]
        assert options == [("draft", "Draft"), ("published", "Published")]

    def test_reference_fields_start_without_options(self):
        descriptors = resolve(product_schema(), ["category_id"])
        assert descriptors["category_id"].options == []
        assert descriptors["category_id"].ref == "categories"

    def test_option_and_validation_overrides(self):
        overrides = FieldOverrides(
            options={"status": ["draft", {"value": "live", "label": "Live now"}]},
            validation={"name": {"min_length": 5, "pattern": "^[A-Z]"}},
        )
        descriptors = resolve(product_schema(), ["status", "name"], overrides)

        assert [o.label for o in descriptors["status"].options] == ["Draft", "Live now"]
        assert descriptors["name"].validation.min_length == 5
        assert descriptors["name"].validation.pattern == "^[A-Z]"

    def test_validation_from_schema(self):
        descriptors = resolve(product_schema(), ["price", "name"])
        assert descriptors["price"].validation.min == 0
        assert descriptors["name"].validation.min_length == 2

    def test_default_producer_is_invoked(self):
        descriptors = resolve(product_schema(), ["release_date", "active"])
        assert descriptors["release_date"].default_value == date.today()
        assert descriptors["active"].default_value is True

    def test_resolve_defaults_calls_producers_each_time(self):
        counter = iter(range(100))
        schema = EntitySchema({"seq": SchemaField(type=SemanticType.number, default=lambda: next(counter))})

        assert resolve_defaults(schema, ["seq"]) == {"seq": 0}
        assert resolve_defaults(schema, ["seq"]) == {"seq": 1}

    def test_resolve_defaults_skips_empty_values(self):
        schema = EntitySchema({"title": SchemaField(), "active": SchemaField(type=SemanticType.boolean, default=False)})
        assert resolve_defaults(schema, ["title", "active", "unknown"]) == {"active": False}


def test_humanize():
    assert humanize("product_image") == "Product image"
    assert humanize("createdAt") == "Created at"
    assert humanize("name") == "Name"


# ===================================================================
# Registry
# ===================================================================


class TestRegistry:
    def test_register_and_menu(self, attachments):
        registry = EntityRegistry(attachments=attachments)
        registry.register(category_config())
        registry.register(product_config())
        hidden = EntityConfig(
            model_name="secrets",
            schema=EntitySchema({"value": SchemaField()}),
        )
        registry.register(hidden)

        menu = registry.menu()
        assert [item.model_name for item in menu] == ["products", "categories", "secrets"]
        assert menu[0].url == "/api/admin/products"
        assert menu[2].label == "Secrets"
        assert len(registry) == 3

    def test_duplicate_registration_fails(self, attachments):
        registry = EntityRegistry(attachments=attachments)
        registry.register(category_config())
        with pytest.raises(ConfigurationError):
            registry.register(category_config())

    def test_unknown_configured_field_fails(self, attachments):
        registry = EntityRegistry(attachments=attachments)
        config = EntityConfig(
            model_name="things",
            schema=EntitySchema({"name": SchemaField()}),
            searchable_fields=("title",),
        )
        with pytest.raises(ConfigurationError, match="title"):
            registry.register(config)

    def test_compiled_json_schema_is_cached(self, registry):
        schema = registry.json_schema("products")
        assert schema["required"] == ["name"]
        assert schema["properties"]["tag_id"]["items"]["format"] == "uuid"
