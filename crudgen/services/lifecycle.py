"""
Record lifecycle controller.

``EntityAdmin`` implements the generated operation surface for one entity:
list, create form, insert, edit form, update, delete, restore and permanent
delete. Records move between two stored states, active and soft-deleted,
and end in the terminal purged state:

    active --delete--> soft-deleted --restore--> active
    soft-deleted --permanent delete--> purged
    active --delete--> purged            (entities without soft delete)
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from crudgen.exceptions.domain import (
    DuplicateKeyError,
    InternalError,
    InvalidIdentityError,
    InvalidOperationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from crudgen.hooks import NO_HOOKS
from crudgen.models import (
    Actor,
    DeleteResult,
    EntityConfig,
    FieldDescriptor,
    FieldOption,
    FilterEcho,
    FormView,
    ListParams,
    OperationResult,
    PaginationInfo,
    Record,
    RecordPage,
    RecordRead,
    RecordState,
    SemanticType,
)
from crudgen.models.base import CREATED_BY, TENANT_FIELD, UPDATED_BY
from crudgen.models.record import utcnow
from crudgen.repositories.record_repository import RecordRepository
from crudgen.services.attachments import AttachmentManager, apply_removals, merge_uploads
from crudgen.services.field_normalizer import coerce_scalar, normalize_payload, removal_list
from crudgen.services.query_builder import QueryBuilder
from crudgen.services.schema_resolver import resolve, resolve_defaults
from crudgen.types import Payload, RecordData
from crudgen.utils.logger import logger
from crudgen.utils.validation import compile_json_schema, validate_json_by_schema

if TYPE_CHECKING:
    from crudgen.registry import EntityRegistry

type Files = Mapping[str, list[UploadFile]]

DEFAULT_REFERENCE_LABEL = "name"


def parse_id(raw_id: Any) -> UUID:
    """Parse a record identity before any store access.

    Raises:
        InvalidIdentityError: If ``raw_id`` is not a well-formed identity
    """
    if isinstance(raw_id, UUID):
        return raw_id
    try:
        return UUID(str(raw_id).strip())
    except (TypeError, ValueError):
        raise InvalidIdentityError(raw_id) from None


def _translate(error: SQLAlchemyError, record_id: UUID | None = None) -> Exception:
    if isinstance(error, IntegrityError) and record_id is not None:
        return DuplicateKeyError("id", str(record_id))
    target = f"record {record_id}" if record_id is not None else "record query"
    logger.error(f"Database error on {target}: {error}")
    return InternalError(str(error))


class EntityAdmin:
    """Administrative operations for one entity, bound to a session."""

    def __init__(
        self,
        config: EntityConfig,
        session: AsyncSession,
        registry: EntityRegistry | None = None,
        attachments: AttachmentManager | None = None,
    ):
        self.config = config
        self.schema = config.schema
        self.session = session
        self.registry = registry
        self.hooks = config.hooks or NO_HOOKS
        self.repo = RecordRepository(session, config.model_name, config.title)
        self.query_builder = QueryBuilder(config)

        if attachments is not None:
            self.attachments = attachments
        elif registry is not None:
            self.attachments = registry.attachments
        else:
            self.attachments = AttachmentManager()

        if registry is not None and config.model_name in registry:
            self.descriptors = registry.descriptors(config.model_name)
            self.json_schema = registry.json_schema(config.model_name)
        else:
            self.descriptors = resolve(config.schema, config.field_names, config.overrides)
            self.json_schema = compile_json_schema(config.schema, self.descriptors)

    # Helpers

    async def _load(self, raw_id: Any, actor: Actor, include_deleted: bool = False) -> Record:
        record_id = parse_id(raw_id)
        if include_deleted:
            record = await self.repo.get(record_id)
        else:
            record = await self.repo.get_active(record_id)
        self._check_tenant(record, actor)
        return record

    async def _load_soft_deleted(self, raw_id: Any, actor: Actor) -> Record:
        if not self.config.soft_delete:
            raise InvalidOperationError(f"{self.config.title} does not support soft delete")
        record = await self.repo.get_soft_deleted(parse_id(raw_id))
        self._check_tenant(record, actor)
        return record

    def _check_tenant(self, record: Record, actor: Actor) -> None:
        """Records of another tenant are reported as missing."""
        if not (actor.tenant_id and self.schema.declares(TENANT_FIELD)):
            return
        if record.tenant_id and record.tenant_id != actor.tenant_id:
            raise NotFoundError(self.config.title, record.id)

    def _defaults(self) -> RecordData:
        """Freshly produced defaults for every form field."""
        produced = resolve_defaults(self.schema, self.descriptors)
        defaults: RecordData = {}
        for name, descriptor in self.descriptors.items():
            value = produced.get(name)
            if descriptor.expects_array:
                defaults[name] = list(value) if value else []
            elif value is not None:
                defaults[name] = coerce_scalar(descriptor, value)
        return defaults

    async def _check_unique(self, data: RecordData, exclude_id: UUID | None = None) -> None:
        for name, schema_field in self.schema.fields.items():
            value = data.get(name)
            if not schema_field.unique or value in (None, ""):
                continue
            if await self.repo.find_conflict(name, value, exclude_id=exclude_id):
                raise DuplicateKeyError(name, value)

    def _validate(self, data: RecordData, payload: Payload) -> None:
        # Bracketed keys such as tags[0] are echoed under their own key
        values = {k: v for k, v in payload.items() if k.split("[", 1)[0] in self.descriptors}
        validate_json_by_schema(data, self.json_schema, self.descriptors, values=values)

    async def _form_descriptors(self) -> dict[str, FieldDescriptor]:
        """Copy of the descriptors with reference options loaded."""
        descriptors = {name: d.model_copy(deep=True) for name, d in self.descriptors.items()}
        for descriptor in descriptors.values():
            if descriptor.ref and descriptor.semantic_type in (
                SemanticType.reference,
                SemanticType.array_reference,
            ):
                descriptor.options = await self.reference_options(descriptor.ref)
        return descriptors

    async def reference_options(self, ref: str) -> list[FieldOption]:
        """Active records of the referenced entity as selectable options."""
        label_field = DEFAULT_REFERENCE_LABEL
        if self.registry is not None and ref in self.registry:
            label_field = self.registry.get(ref).reference_label_field
        records = await RecordRepository(self.session, ref).list_active()
        return [
            FieldOption(value=str(r.id), label=str(r.data.get(label_field) or r.id)) for r in records
        ]

    # Operations

    async def list(self, params: ListParams, actor: Actor) -> RecordPage:
        """One page of records matching ``params``."""
        query = self.query_builder.build(params, actor)
        deleted_count = None
        try:
            records = list(await self.repo.execute_query(query.statement))
            total = await self.repo.count_query(query.count_statement)
            if query.deleted_count_statement is not None:
                deleted_count = await self.repo.count_query(query.deleted_count_statement)
        except SQLAlchemyError as e:
            await self.repo.rollback()
            raise _translate(e) from e

        records = await self.hooks.after_query(records, actor)
        total_pages = math.ceil(total / query.limit) if total else 0

        return RecordPage(
            model_name=self.config.model_name,
            title=self.config.title,
            records=[RecordRead.model_validate(r) for r in records],
            field_config=self.descriptors,
            pagination=PaginationInfo(
                current_page=query.page,
                total_pages=total_pages,
                total_items=total,
                items_per_page=query.limit,
                has_next_page=query.page < total_pages,
                has_prev_page=query.page > 1,
            ),
            filters=FilterEcho(
                search=params.search,
                applied=[k for k, v in params.filters.items() if v not in (None, "")],
                searchable=list(self.config.searchable_fields),
                filterable=self.query_builder.filterable_fields,
                sortable=sorted(self.query_builder.sortable_fields),
            ),
            show_deleted=params.deleted and self.config.soft_delete,
            soft_delete=self.config.soft_delete,
            deleted_count=deleted_count,
        )

    async def create_form(self, actor: Actor) -> FormView:
        """Descriptors and default values for a new record."""
        descriptors = await self._form_descriptors()
        defaults = self._defaults()
        for name, value in defaults.items():
            descriptors[name].default_value = value
        descriptors = await self.hooks.before_create_form(descriptors, actor)
        return FormView(
            model_name=self.config.model_name,
            title=f"Create {self.config.title}",
            field_config=descriptors,
            record=defaults,
        )

    async def insert(self, payload: Payload, files: Files, actor: Actor) -> OperationResult:
        """Create a record from a submitted payload and uploads.

        The identity is allocated first and attachments are written under it,
        so the record is persisted exactly once with its final paths.

        Raises:
            ValidationError: If custom or schema validation fails
            DuplicateKeyError: If a unique field value is taken
            InternalError: If the store fails for another reason
        """
        errors = await self.hooks.validate_insert(payload, actor)
        if errors:
            raise ValidationError(errors, payload)

        normalized = normalize_payload(self.descriptors, payload)
        warnings = list(normalized.warnings)
        data = {**self._defaults(), **normalized.data}
        data = await self.hooks.before_insert(data, actor)

        self._validate(data, payload)
        await self._check_unique(data)

        record_id = uuid4()
        stored = await self.attachments.store(self.config.singular, record_id, self.descriptors, files)
        warnings.extend(stored.warnings)
        for name, paths in stored.paths.items():
            data[name] = merge_uploads(data.get(name), paths, self.descriptors[name].expects_array)

        record = Record(id=record_id, entity=self.config.model_name, data=data)
        if actor.user_id and self.schema.declares(CREATED_BY):
            record.created_by = actor.user_id
        if actor.tenant_id and self.schema.declares(TENANT_FIELD):
            record.tenant_id = actor.tenant_id

        try:
            record = await self.repo.create(record)
        except SQLAlchemyError as e:
            await self.repo.rollback()
            await self.attachments.purge(self.config.singular, record_id)
            raise _translate(e, record_id) from e

        await self.hooks.after_insert(record, actor)
        logger.info(f"{self.config.title} {record.id} created")
        return OperationResult(record=record, warnings=warnings)

    async def edit_form(self, raw_id: Any, actor: Actor) -> FormView:
        """Descriptors and current values of an active record.

        Raises:
            InvalidIdentityError: If the identity is malformed
            NotFoundError: If no active record has this identity
        """
        record = await self._load(raw_id, actor)
        descriptors = await self._form_descriptors()
        descriptors = await self.hooks.before_edit_form(descriptors, record, actor)
        [record] = await self.hooks.after_query([record], actor)
        return FormView(
            model_name=self.config.model_name,
            title=f"Edit {self.config.title}",
            field_config=descriptors,
            record={"id": str(record.id), **record.data},
            record_id=record.id,
        )

    async def update(
        self,
        raw_id: Any,
        payload: Payload,
        files: Files,
        actor: Actor,
        include_deleted: bool = False,
    ) -> OperationResult:
        """Merge a submitted payload and uploads into an existing record.

        File removals named in the payload are applied before new uploads are
        added, so surviving paths keep their order ahead of new ones.

        Raises:
            InvalidIdentityError: If the identity is malformed
            NotFoundError: If the record is absent (or soft-deleted, unless
                ``include_deleted``)
            ValidationError: If custom or schema validation fails
            DuplicateKeyError: If a unique field value is taken
        """
        record = await self._load(raw_id, actor, include_deleted=include_deleted)

        errors = await self.hooks.validate_update(payload, record, actor)
        if errors:
            raise ValidationError(errors, payload)

        normalized = normalize_payload(self.descriptors, payload)
        warnings = list(normalized.warnings)
        changes = await self.hooks.before_update(record, normalized.data, actor)
        data = {**(record.data or {}), **changes}

        removed: list[str] = []
        for name, descriptor in self.descriptors.items():
            if not descriptor.is_file:
                continue
            removals = removal_list(payload, name)
            if not removals:
                continue
            current = data.get(name)
            data[name] = apply_removals(current, removals)
            existing = current if isinstance(current, list) else [current]
            removed.extend(path for path in removals if path in existing)

        self._validate(data, payload)
        await self._check_unique(data, exclude_id=record.id)

        stored = await self.attachments.store(self.config.singular, record.id, self.descriptors, files)
        warnings.extend(stored.warnings)
        for name, paths in stored.paths.items():
            data[name] = merge_uploads(data.get(name), paths, self.descriptors[name].expects_array)

        update_data: dict[str, Any] = {"data": data, "updated_at": utcnow()}
        if actor.user_id and self.schema.declares(UPDATED_BY):
            update_data["updated_by"] = actor.user_id
        if actor.tenant_id and self.schema.declares(TENANT_FIELD):
            update_data["tenant_id"] = actor.tenant_id

        try:
            record = await self.repo.update(record, update_data)
        except SQLAlchemyError as e:
            await self.repo.rollback()
            new_paths = [path for paths in stored.paths.values() for path in paths]
            await self.attachments.unlink_removed(self.config.singular, record.id, new_paths)
            raise _translate(e, record.id) from e

        await self.attachments.unlink_removed(self.config.singular, record.id, removed)
        await self.hooks.after_update(record, actor)
        logger.info(f"{self.config.title} {record.id} updated")
        return OperationResult(record=record, warnings=warnings)

    async def delete(self, raw_id: Any, actor: Actor) -> DeleteResult:
        """Soft delete when the entity supports it, otherwise purge.

        Raises:
            InvalidIdentityError: If the identity is malformed
            NotFoundError: If no active record has this identity
        """
        record = await self._load(raw_id, actor)
        await self.hooks.before_delete(record, actor)

        if self.config.soft_delete:
            try:
                record = await self.repo.soft_delete(record, actor.user_id)
            except SQLAlchemyError as e:
                await self.repo.rollback()
                raise _translate(e, record.id) from e
            result = DeleteResult(
                id=record.id,
                message=f"{self.config.title} deleted successfully",
                state=record.state,
                deleted_at=record.deleted_at,
            )
        else:
            warnings = await self._purge(record)
            result = DeleteResult(
                id=record.id,
                message=f"{self.config.title} permanently deleted",
                state=RecordState.purged,
                permanent=True,
                warnings=warnings,
            )

        await self.hooks.after_delete(record, actor)
        return result

    async def restore(self, raw_id: Any, actor: Actor) -> DeleteResult:
        """Clear the soft-delete timestamp of a soft-deleted record.

        Raises:
            InvalidOperationError: If the entity has no soft delete
            NotFoundError: If the record is absent or not soft-deleted
        """
        record = await self._load_soft_deleted(raw_id, actor)
        await self.hooks.before_restore(record, actor)
        try:
            record = await self.repo.restore(record, actor.user_id)
        except SQLAlchemyError as e:
            await self.repo.rollback()
            raise _translate(e, record.id) from e
        await self.hooks.after_restore(record, actor)
        return DeleteResult(
            id=record.id, message=f"{self.config.title} restored successfully", state=record.state
        )

    async def permanent_delete(self, raw_id: Any, actor: Actor) -> DeleteResult:
        """Destroy a soft-deleted record together with its attachments.

        Raises:
            InvalidOperationError: If the entity has no soft delete
            NotFoundError: If the record is absent or not soft-deleted
        """
        record = await self._load_soft_deleted(raw_id, actor)
        await self.hooks.before_permanent_delete(record, actor)
        warnings = await self._purge(record)
        await self.hooks.after_permanent_delete(record, actor)
        return DeleteResult(
            id=record.id,
            message=f"{self.config.title} permanently deleted",
            state=RecordState.purged,
            permanent=True,
            warnings=warnings,
        )

    async def _purge(self, record: Record) -> list[str]:
        """Delete the row, then its attachment directory."""
        record_id = record.id
        try:
            await self.repo.purge(record)
        except SQLAlchemyError as e:
            await self.repo.rollback()
            raise _translate(e, record_id) from e
        try:
            await self.attachments.purge(self.config.singular, record_id)
        except StorageError as e:
            logger.warning(str(e))
            return [str(e)]
        return []
