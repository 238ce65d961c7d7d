"""
List query construction.

``QueryBuilder.build`` turns list parameters into one select statement over
the record table: tenant scope, soft-delete visibility, text search,
per-field filters, a whitelisted sort and clamped pagination. The count
statements share the filtered statement, so the total always matches what
pagination walks through.
"""

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.sql import ColumnElement, Select
from sqlmodel import col, select

from crudgen.hooks import NO_HOOKS
from crudgen.models import Actor, EntityConfig, ListParams, Record, SemanticType
from crudgen.models.base import CREATED_AT, TENANT_FIELD, UPDATED_AT
from crudgen.services.field_normalizer import FALSE_VALUES, TRUE_VALUES

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_BOOLEAN = {"true": True, "false": False}

DEFAULT_SORT = CREATED_AT


def _flag(raw: str) -> bool | None:
    text = raw.strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


@dataclass(frozen=True)
class ListQuery:
    """Statements and effective paging for one list request."""

    statement: Select
    count_statement: Select
    deleted_count_statement: Select | None
    page: int
    limit: int
    sort_by: str
    sort_order: str


def _data(field: str) -> Any:
    return col(Record.data)[field]


class QueryBuilder:
    """Builds list statements for one entity."""

    def __init__(self, config: EntityConfig):
        self.config = config
        self.schema = config.schema
        self.hooks = config.hooks or NO_HOOKS

    @property
    def filterable_fields(self) -> list[str]:
        return list(self.config.filterable_fields) or self.config.field_names

    @property
    def sortable_fields(self) -> set[str]:
        fields = set(self.config.sortable_fields) or set(self.config.field_names)
        return {f for f in fields if f in self.schema} | {CREATED_AT, UPDATED_AT}

    def clamp(self, params: ListParams) -> tuple[int, int]:
        """Effective page (>= 1) and page size (1..max)."""
        pagination = self.config.pagination
        limit = params.limit if params.limit and params.limit > 0 else pagination.default_limit
        limit = min(limit, pagination.max_limit)
        page = max(params.page, 1)
        return page, limit

    # Conditions

    def search_condition(self, search: str) -> ColumnElement[bool] | None:
        """OR of case-insensitive substring matches across searchable fields."""
        search = search.strip()
        fields = [f for f in self.config.searchable_fields if f in self.schema]
        if not search or not fields:
            return None
        return or_(*(_data(f).as_string().icontains(search, autoescape=True) for f in fields))

    @staticmethod
    def _literal(semantic: SemanticType, raw: str) -> Any:
        if semantic == SemanticType.number and _NUMERIC.match(raw):
            return float(raw)
        return raw

    def filter_condition(self, field: str, value: Any) -> ColumnElement[bool] | None:
        """Condition for one filter value, or None if the value is empty."""
        if value is None:
            return None
        if isinstance(value, list):
            value = ",".join(str(v) for v in value)
        raw = str(value).strip()
        if not raw:
            return None

        schema_field = self.schema.get(field)
        semantic = schema_field.type if schema_field else SemanticType.text
        element = _data(field)

        if semantic.is_array:
            members = [v.strip() for v in raw.split(",") if v.strip()]
            return or_(*(element.as_string().contains(f'"{m}"', autoescape=True) for m in members))

        if "," in raw:
            if semantic == SemanticType.boolean:
                flags = {_flag(v) for v in raw.split(",")} - {None}
                return element.as_boolean().in_(sorted(flags)) if flags else None
            literals = [self._literal(semantic, v.strip()) for v in raw.split(",") if v.strip()]
            if semantic == SemanticType.number and all(isinstance(v, float) for v in literals):
                return element.as_float().in_(literals)
            return element.as_string().in_([str(v) for v in literals])

        # Text and reference values are stored as strings whatever they look like
        textual = semantic in (SemanticType.text, SemanticType.reference)
        lowered = raw.lower()
        if lowered in _BOOLEAN and not textual:
            return element.as_boolean() == _BOOLEAN[lowered]
        if _NUMERIC.match(raw) and not textual:
            return element.as_float() == float(raw)
        return element.as_string() == raw

    def tenant_condition(self, params: ListParams, actor: Actor) -> ColumnElement[bool] | None:
        """The actor's tenant wins; a tenant parameter only scopes tenantless callers."""
        if not self.schema.declares(TENANT_FIELD):
            return None
        if actor.tenant_id:
            return col(Record.tenant_id) == actor.tenant_id
        requested = params.filters.get(TENANT_FIELD)
        if requested:
            return col(Record.tenant_id) == str(requested)
        return None

    def visibility_condition(self, deleted: bool) -> ColumnElement[bool] | None:
        if not self.config.soft_delete:
            return None
        if deleted:
            return col(Record.deleted_at).is_not(None)
        return col(Record.deleted_at).is_(None)

    # Statements

    def _filtered(self, params: ListParams, actor: Actor, deleted: bool) -> Select:
        conditions: list[ColumnElement[bool]] = [col(Record.entity) == self.config.model_name]

        tenant = self.tenant_condition(params, actor)
        if tenant is not None:
            conditions.append(tenant)

        visibility = self.visibility_condition(deleted)
        if visibility is not None:
            conditions.append(visibility)

        search = self.search_condition(params.search)
        if search is not None:
            conditions.append(search)

        filterable = set(self.filterable_fields)
        for field, value in params.filters.items():
            if field == TENANT_FIELD or field not in filterable:
                continue
            condition = self.filter_condition(field, value)
            if condition is not None:
                conditions.append(condition)

        statement = select(Record).where(and_(*conditions))
        return self.hooks.apply_filters(statement, params, actor)

    def _order_by(self, sort_by: str, sort_order: str) -> list[Any]:
        descending = sort_order == "desc"
        if sort_by in (CREATED_AT, UPDATED_AT):
            key = col(getattr(Record, sort_by))
        else:
            schema_field = self.schema.get(sort_by)
            key = (
                _data(sort_by).as_float()
                if schema_field is not None and schema_field.type == SemanticType.number
                else _data(sort_by).as_string()
            )
        tiebreak = col(Record.id)
        if descending:
            return [key.desc(), tiebreak.desc()]
        return [key.asc(), tiebreak.asc()]

    def build(self, params: ListParams, actor: Actor) -> ListQuery:
        """Build the list statements for ``params`` on behalf of ``actor``.

        An unknown sort key falls back to newest first.
        """
        page, limit = self.clamp(params)
        if params.sort_by in self.sortable_fields:
            sort_by, sort_order = params.sort_by, params.sort_order
        else:
            sort_by, sort_order = DEFAULT_SORT, "desc"

        deleted = params.deleted and self.config.soft_delete
        filtered = self._filtered(params, actor, deleted)
        statement = (
            filtered.order_by(*self._order_by(sort_by, sort_order))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        deleted_count = self._filtered(params, actor, True) if self.config.soft_delete else None

        return ListQuery(
            statement=statement,
            count_statement=filtered,
            deleted_count_statement=deleted_count,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
