"""
Extension hook points for entity administration.

Each lifecycle operation calls a fixed set of hooks on the entity's
``EntityHooks`` instance. Subclass and override only what an entity needs;
every method defaults to a no-op.

Invocation order:

- list: ``apply_filters`` -> query -> ``after_query``
- create form: ``before_create_form``
- insert: ``validate_insert`` -> ``before_insert`` -> persist -> ``after_insert``
- edit form: ``before_edit_form`` -> ``after_query``
- update: ``validate_update`` -> ``before_update`` -> persist -> ``after_update``
- delete: ``before_delete`` -> soft or hard delete -> ``after_delete``
- restore: ``before_restore`` -> clear timestamp -> ``after_restore``
- permanent delete: ``before_permanent_delete`` -> purge -> ``after_permanent_delete``
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlalchemy.sql import Select

    from crudgen.exceptions.domain import FieldError
    from crudgen.models import Actor, FieldDescriptor, ListParams, Record
    from crudgen.types import Payload, RecordData


class EntityHooks:
    """No-op implementation of every hook point."""

    async def validate_insert(self, payload: Payload, actor: Actor) -> list[FieldError]:
        """Custom validation on the raw submitted payload."""
        return []

    async def validate_update(
        self, payload: Payload, record: Record, actor: Actor
    ) -> list[FieldError]:
        return []

    async def before_insert(self, data: RecordData, actor: Actor) -> RecordData:
        """Return the (possibly modified) field values about to be inserted."""
        return data

    async def after_insert(self, record: Record, actor: Actor) -> None:
        pass

    async def before_update(self, record: Record, data: RecordData, actor: Actor) -> RecordData:
        """Return the (possibly modified) field values about to be merged into ``record``."""
        return data

    async def after_update(self, record: Record, actor: Actor) -> None:
        pass

    async def before_delete(self, record: Record, actor: Actor) -> None:
        pass

    async def after_delete(self, record: Record, actor: Actor) -> None:
        pass

    async def before_restore(self, record: Record, actor: Actor) -> None:
        pass

    async def after_restore(self, record: Record, actor: Actor) -> None:
        pass

    async def before_permanent_delete(self, record: Record, actor: Actor) -> None:
        pass

    async def after_permanent_delete(self, record: Record, actor: Actor) -> None:
        pass

    async def before_create_form(
        self, descriptors: dict[str, FieldDescriptor], actor: Actor
    ) -> dict[str, FieldDescriptor]:
        return descriptors

    async def before_edit_form(
        self, descriptors: dict[str, FieldDescriptor], record: Record, actor: Actor
    ) -> dict[str, FieldDescriptor]:
        return descriptors

    async def after_query(self, records: list[Record], actor: Actor) -> list[Record]:
        return records

    def apply_filters(self, statement: Select[Any], params: ListParams, actor: Actor) -> Select[Any]:
        """Refine the list statement before pagination and counting."""
        return statement


NO_HOOKS = EntityHooks()
