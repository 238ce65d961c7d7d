"""
Registry of administered entities.

Entity configurations are checked once at registration: every configured
field must exist in the schema and every field descriptor must resolve.
Resolved descriptors and the compiled JSON Schema are cached per entity.
"""

from collections.abc import Iterator

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from crudgen.exceptions.domain import ConfigurationError, NotFoundError
from crudgen.models import EntityConfig, FieldDescriptor
from crudgen.services.attachments import AttachmentManager
from crudgen.services.lifecycle import EntityAdmin
from crudgen.services.schema_resolver import resolve
from crudgen.types import JSONDict
from crudgen.utils.logger import logger
from crudgen.utils.validation import compile_json_schema


class MenuItem(BaseModel):
    """One navigation entry for a registered entity."""

    model_name: str
    label: str
    icon: str
    description: str
    order: int
    url: str


class EntityRegistry:
    """Holds every entity the application administers."""

    def __init__(self, attachments: AttachmentManager | None = None) -> None:
        self._configs: dict[str, EntityConfig] = {}
        self._descriptors: dict[str, dict[str, FieldDescriptor]] = {}
        self._json_schemas: dict[str, JSONDict] = {}
        self._attachments = attachments

    @property
    def attachments(self) -> AttachmentManager:
        if self._attachments is None:
            self._attachments = AttachmentManager()
        return self._attachments

    def register(self, config: EntityConfig) -> EntityConfig:
        """Validate and add an entity configuration.

        Raises:
            ConfigurationError: If the configuration is inconsistent with its schema
        """
        if config.model_name in self._configs:
            raise ConfigurationError(f"Entity '{config.model_name}' is already registered")

        for group in ("fields", "searchable_fields", "filterable_fields", "sortable_fields"):
            unknown = [name for name in getattr(config, group) if name not in config.schema]
            if unknown:
                raise ConfigurationError(
                    f"{config.model_name}.{group} names fields missing from the schema: "
                    f"{', '.join(unknown)}"
                )

        if config.pagination.default_limit < 1 or config.pagination.max_limit < 1:
            raise ConfigurationError(f"{config.model_name}: page sizes must be positive")

        descriptors = resolve(config.schema, config.field_names, config.overrides)
        self._json_schemas[config.model_name] = compile_json_schema(config.schema, descriptors)
        self._descriptors[config.model_name] = descriptors
        self._configs[config.model_name] = config
        logger.info(f"Registered entity {config.model_name} with {len(descriptors)} fields")
        return config

    def get(self, model_name: str) -> EntityConfig:
        """Get a registered configuration.

        Raises:
            NotFoundError: If no entity with this name is registered
        """
        try:
            return self._configs[model_name]
        except KeyError:
            raise NotFoundError(f"Entity '{model_name}'") from None

    def descriptors(self, model_name: str) -> dict[str, FieldDescriptor]:
        """Cached descriptors; callers must copy before mutating."""
        self.get(model_name)
        return self._descriptors[model_name]

    def json_schema(self, model_name: str) -> JSONDict:
        self.get(model_name)
        return self._json_schemas[model_name]

    def admin(self, model_name: str, session: AsyncSession) -> EntityAdmin:
        """Lifecycle controller for one entity bound to ``session``."""
        return EntityAdmin(self.get(model_name), session, registry=self)

    def menu(self) -> list[MenuItem]:
        """Enabled entities ordered by menu position, then name."""
        items = [
            MenuItem(
                model_name=config.model_name,
                label=config.menu.label or config.model_name.replace("_", " ").title(),
                icon=config.menu.icon,
                description=config.menu.description,
                order=config.menu.order,
                url=f"/api/admin/{config.model_name}",
            )
            for config in self._configs.values()
            if config.menu.enabled
        ]
        return sorted(items, key=lambda item: (item.order, item.model_name))

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._configs

    def __iter__(self) -> Iterator[EntityConfig]:
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)
