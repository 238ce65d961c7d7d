"""
Sample entities and helpers shared by the test suite.

``products`` exercises every semantic type, attachments, hooks and soft
delete; ``categories`` is a small hard-delete entity with a unique name.
"""

import io
from datetime import date

from starlette.datastructures import Headers, UploadFile

from crudgen.hooks import EntityHooks
from crudgen.registry import EntityRegistry
from crudgen.models import (
    EntityConfig,
    EntitySchema,
    MenuEntry,
    Pagination,
    SchemaField,
    SemanticType,
)


def category_schema() -> EntitySchema:
    return EntitySchema(
        {
            "name": SchemaField(required=True, unique=True, max_length=50),
            "description": SchemaField(),
        }
    )


def product_schema() -> EntitySchema:
    return EntitySchema(
        {
            "name": SchemaField(required=True, min_length=2),
            "description": SchemaField(),
            "price": SchemaField(type=SemanticType.number, minimum=0),
            "rating": SchemaField(type=SemanticType.number),
            "active": SchemaField(type=SemanticType.boolean, default=True),
            "status": SchemaField(enum=("draft", "published"), default="draft"),
            "release_date": SchemaField(type=SemanticType.date, default=date.today),
            "category_id": SchemaField(type=SemanticType.reference, ref="categories"),
            "tag_id": SchemaField(type=SemanticType.array_reference, ref="tags"),
            "tags": SchemaField(type=SemanticType.array_text),
            "product_images": SchemaField(type=SemanticType.array_text),
            "manual": SchemaField(display_name="User manual"),
            "created_by": SchemaField(),
            "updated_by": SchemaField(),
            "tenant_id": SchemaField(),
        }
    )


class RecordingHooks(EntityHooks):
    """Hooks that remember the order in which they were called."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def validate_insert(self, payload, actor):
        self.calls.append("validate_insert")
        return []

    async def before_insert(self, data, actor):
        self.calls.append("before_insert")
        return {**data, "description": data.get("description") or "from hook"}

    async def after_insert(self, record, actor):
        self.calls.append("after_insert")

    async def validate_update(self, payload, record, actor):
        self.calls.append("validate_update")
        return []

    async def before_update(self, record, data, actor):
        self.calls.append("before_update")
        return data

    async def after_update(self, record, actor):
        self.calls.append("after_update")

    async def before_delete(self, record, actor):
        self.calls.append("before_delete")

    async def after_delete(self, record, actor):
        self.calls.append("after_delete")

    async def before_restore(self, record, actor):
        self.calls.append("before_restore")

    async def after_restore(self, record, actor):
        self.calls.append("after_restore")

    async def before_permanent_delete(self, record, actor):
        self.calls.append("before_permanent_delete")

    async def after_permanent_delete(self, record, actor):
        self.calls.append("after_permanent_delete")


def category_config() -> EntityConfig:
    return EntityConfig(
        model_name="categories",
        schema=category_schema(),
        searchable_fields=("name",),
        menu=MenuEntry(label="Categories", order=20),
    )


def product_config(hooks: EntityHooks | None = None) -> EntityConfig:
    return EntityConfig(
        model_name="products",
        schema=product_schema(),
        searchable_fields=("name", "description"),
        filterable_fields=("active", "status", "category_id", "tag_id", "tags", "rating", "price"),
        sortable_fields=("name", "price"),
        pagination=Pagination(default_limit=2, max_limit=3),
        soft_delete=True,
        hooks=hooks,
        menu=MenuEntry(label="Products", icon="fas fa-box", order=10),
    )


def make_upload(filename: str, content: bytes = b"data", content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def sample_registry() -> EntityRegistry:
    """Both sample entities, importable as ``tests.utils.factories:sample_registry``."""
    registry = EntityRegistry()
    registry.register(category_config())
    registry.register(product_config())
    return registry
