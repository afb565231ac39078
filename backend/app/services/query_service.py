# Overview: Generic list engine behind every "list entities" endpoint.

"""
Query Engine - filter, search, sort, paginate, project, calculate

WHY: Every list endpoint is the same pipeline with different field names.
One engine driven by a small declarative EntityQueryConfig replaces a
per-entity copy of the pipeline.

PIPELINE:
1. Identifier coercion: filter keys listed in id_fields are converted to
   integer ids before matching.
2. Search merge: filter AND (searchable_1 ILIKE %q% OR searchable_2 ...).
3. Calculation: aggregates over the same match (filter AND search), returned
   as one summary record next to the page.
4. Sort: {"created_at": -1} unless given; id breaks ties.
5. Projection: {"name": 1} unless given; inclusion and exclusion never mix.
6. Pagination: one statement returns the slice and COUNT(*) OVER () total.

FILTER LANGUAGE:
Keys are document field paths. A path resolves to a column
("quantity"), a key inside a JSON snapshot column ("category.id"), or a
field of an embedded child collection declared in `relations`
("products.imei" -> EXISTS over transaction_lines). Values are a literal
(equality), None (is null), a list (membership) or an operator map:
    {"$gte": 1, "$lt": 10}, {"$in": [...]}, {"$contains": "abc"}
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import and_, func, inspect, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import JSON

from ..extensions import db
from ..responses import response_payload
from ..validation import ValidationError, coerce_identifier, coerce_positive_int
from .concurrency import translate_store_error


OPERATORS = ("$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin", "$contains")


@dataclass(frozen=True)
class EntityQueryConfig:
    """
    Declarative description of one listable entity.

    relations maps a document key to the relationship attribute holding the
    embedded collection (Transaction "products" -> "lines").
    calculations maps a summary name to a callable building an aggregate
    expression from the model class.
    base_filter is always applied and cannot be overridden by clients.
    """
    name: str
    model: type
    id_fields: frozenset[str] = frozenset({"id", "shop_id"})
    searchable_fields: tuple[str, ...] = ()
    calculations: dict[str, Callable[[type], Any]] = field(default_factory=dict)
    relations: dict[str, str] = field(default_factory=dict)
    base_filter: dict[str, Any] = field(default_factory=dict)
    default_sort: dict[str, int] = field(default_factory=lambda: {"created_at": -1})
    default_select: dict[str, int] = field(default_factory=lambda: {"name": 1})


@dataclass
class Pagination:
    page_size: int
    current_page: int = 0

    @property
    def skip(self) -> int:
        return self.page_size * self.current_page


@dataclass
class ListRequest:
    filter: dict[str, Any] = field(default_factory=dict)
    pagination: Pagination | None = None
    sort: dict[str, int] | None = None
    select: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "ListRequest":
        """Build from a JSON body; camelCase pagination keys are accepted."""
        data = data or {}
        filter_ = data.get("filter") or {}
        if not isinstance(filter_, dict):
            raise ValidationError("filter must be an object")

        pagination = None
        raw = data.get("pagination")
        if raw:
            if not isinstance(raw, dict):
                raise ValidationError("pagination must be an object")
            page_size = raw.get("page_size", raw.get("pageSize"))
            current_page = raw.get("current_page", raw.get("currentPage", 0))
            pagination = Pagination(
                page_size=coerce_positive_int(page_size, "page_size"),
                current_page=coerce_positive_int(current_page, "current_page", allow_zero=True),
            )

        sort = data.get("sort") or None
        if sort is not None and not isinstance(sort, dict):
            raise ValidationError("sort must be an object")
        select = data.get("select") or None
        if select is not None and not isinstance(select, dict):
            raise ValidationError("select must be an object")

        return cls(filter=dict(filter_), pagination=pagination, sort=sort, select=select)


# =============================================================================
# FIELD RESOLUTION
# =============================================================================

def _typed_json(element, sample: Any):
    """Cast a JSON element so it compares like the Python value it is matched against."""
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


class _FieldRef:
    """A resolved filter/sort path: a column, a JSON key, or a child-collection field."""

    def __init__(self, model: type, path: str, relations: dict[str, str]):
        self.path = path
        self.relationship = None
        self.child: _FieldRef | None = None
        self.column = None
        self.json_path: tuple[str, ...] = ()

        head, _, rest = path.partition(".")
        mapper = inspect(model)

        if head in relations:
            if not rest:
                raise ValidationError(f"Field '{path}' needs a sub-field")
            rel_key = relations[head]
            self.relationship = getattr(model, rel_key)
            child_model = mapper.relationships[rel_key].mapper.class_
            self.child = _FieldRef(child_model, rest, {})
            return

        head = getattr(model, "__field_aliases__", {}).get(head, head)
        document_column = getattr(model, "__document_column__", None)
        if head not in mapper.column_attrs and document_column:
            # Archived rows keep the original fields inside one JSON column
            self.column = getattr(model, document_column)
            self.json_path = tuple(path.split("."))
            return

        if head not in mapper.column_attrs:
            raise ValidationError(f"Unknown field '{path}'")
        self.column = getattr(model, head)
        if rest:
            if not isinstance(mapper.column_attrs[head].columns[0].type, JSON):
                raise ValidationError(f"Field '{head}' has no sub-fields")
            self.json_path = tuple(rest.split("."))

    @property
    def sortable(self) -> bool:
        return self.relationship is None

    def expression(self, sample: Any = None):
        if self.json_path:
            key = self.json_path[0] if len(self.json_path) == 1 else self.json_path
            return _typed_json(self.column[key], sample)
        return self.column

    def build(self, make_clause: Callable[[Any], Any], sample: Any):
        """Apply make_clause to the resolved expression, wrapping child fields in EXISTS."""
        if self.relationship is not None:
            return self.relationship.any(self.child.build(make_clause, sample))
        return make_clause(self.expression(sample))


# =============================================================================
# FILTER NORMALIZATION
# =============================================================================

def _coerce_ids(path: str, value: Any) -> Any:
    if isinstance(value, dict):
        return {op: _coerce_ids(path, v) for op, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [coerce_identifier(v, path) for v in value]
    if value is None:
        return None
    return coerce_identifier(value, path)


def normalize_filter(config: EntityQueryConfig, raw: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the filter with id_fields converted to native identifiers."""
    normalized = {}
    for path, value in raw.items():
        if not isinstance(path, str) or not path:
            raise ValidationError("filter keys must be field paths")
        if path in config.id_fields:
            value = _coerce_ids(path, value)
        normalized[path] = value
    return normalized


def _sample(values: list) -> Any:
    return next((v for v in values if v is not None), None)


def _operator_clause(ref: _FieldRef, op: str, operand: Any):
    if op == "$eq":
        return _literal_clause(ref, operand)
    if op == "$ne":
        if operand is None:
            return ref.build(lambda e: e.isnot(None), None)
        return ref.build(lambda e: or_(e != operand, e.is_(None)), operand)
    if op in ("$in", "$nin"):
        if not isinstance(operand, (list, tuple)):
            raise ValidationError(f"{op} on '{ref.path}' expects a list")
        values = list(operand)
        sample = _sample(values)
        if op == "$in":
            return ref.build(lambda e: e.in_(values), sample)
        if ref.relationship is not None:
            # No line item may match
            return ~ref.build(lambda e: e.in_(values), sample)
        # Missing or null values are not in the list
        return ref.build(lambda e: or_(~e.in_(values), e.is_(None)), sample)
    if op == "$contains":
        if not isinstance(operand, str):
            raise ValidationError(f"$contains on '{ref.path}' expects a string")
        return ref.build(lambda e: e.icontains(operand, autoescape=True), operand)
    if operand is None:
        raise ValidationError(f"{op} on '{ref.path}' cannot compare with null")
    comparators = {
        "$gt": lambda e: e > operand,
        "$gte": lambda e: e >= operand,
        "$lt": lambda e: e < operand,
        "$lte": lambda e: e <= operand,
    }
    return ref.build(comparators[op], operand)


def _literal_clause(ref: _FieldRef, value: Any):
    if value is None:
        return ref.build(lambda e: e.is_(None), None)
    if isinstance(value, (list, tuple)):
        values = list(value)
        return ref.build(lambda e: e.in_(values), _sample(values))
    return ref.build(lambda e: e == value, value)


def build_filter_clauses(config: EntityQueryConfig, filter_: dict[str, Any]) -> list:
    clauses = []
    for path, value in filter_.items():
        ref = _FieldRef(config.model, path, config.relations)
        if isinstance(value, dict):
            if not value:
                raise ValidationError(f"Empty condition for '{path}'")
            unknown = set(value) - set(OPERATORS)
            if unknown:
                raise ValidationError(f"Unsupported operator(s) for '{path}': {sorted(unknown)}")
            clauses.extend(_operator_clause(ref, op, operand) for op, operand in value.items())
        else:
            clauses.append(_literal_clause(ref, value))
    return clauses


def build_search_clause(config: EntityQueryConfig, search: str | None):
    """OR of case-insensitive partial matches over the searchable fields."""
    if not search or not config.searchable_fields:
        return None
    term = search.strip()
    if not term:
        return None
    matches = [
        _FieldRef(config.model, path, config.relations).build(
            lambda e: e.icontains(term, autoescape=True), term
        )
        for path in config.searchable_fields
    ]
    return or_(*matches)


# =============================================================================
# SORT & PROJECTION
# =============================================================================

def build_order_by(config: EntityQueryConfig, sort: dict[str, int] | None) -> list:
    sort = sort or config.default_sort
    order = []
    for path, direction in sort.items():
        if direction not in (1, -1):
            raise ValidationError(f"Sort direction for '{path}' must be 1 or -1")
        ref = _FieldRef(config.model, path, config.relations)
        if not ref.sortable:
            raise ValidationError(f"Cannot sort on embedded collection field '{path}'")
        expr = ref.expression()
        order.append(expr.asc() if direction == 1 else expr.desc())
    pk = inspect(config.model).primary_key[0]
    order.append(pk.desc())
    return order


def validate_projection(select: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Returns (inclusive, paths). Mixing inclusion and exclusion is rejected,
    except that "id" may always be excluded.
    """
    included, excluded = [], []
    for path, flag in select.items():
        if flag not in (0, 1, True, False):
            raise ValidationError(f"Projection value for '{path}' must be 0 or 1")
        (included if flag else excluded).append(path)
    if included and [p for p in excluded if p != "id"]:
        raise ValidationError(
            "Error! Projection mismatch",
            details={"included": included, "excluded": excluded},
        )
    return bool(included), included if included else excluded


def _pick(source: Any, parts: list[str]) -> Any:
    if isinstance(source, list):
        return [_pick(item, parts) for item in source]
    if not isinstance(source, dict) or parts[0] not in source:
        return _MISSING
    value = source[parts[0]]
    if len(parts) == 1:
        return copy.deepcopy(value)
    return _pick(value, parts[1:])


def _merge(target: dict, parts: list[str], value: Any) -> None:
    if len(parts) == 1:
        target[parts[0]] = value
        return
    existing = target.get(parts[0])
    if isinstance(value, list):
        if not isinstance(existing, list):
            existing = [{} for _ in value]
            target[parts[0]] = existing
        for slot, item in zip(existing, value):
            if item is not _MISSING:
                _merge(slot, parts[1:], item)
        return
    if not isinstance(existing, dict):
        existing = {}
        target[parts[0]] = existing
    _merge(existing, parts[1:], value)


def _drop(target: Any, parts: list[str]) -> None:
    if isinstance(target, list):
        for item in target:
            _drop(item, parts)
        return
    if not isinstance(target, dict) or parts[0] not in target:
        return
    if len(parts) == 1:
        del target[parts[0]]
    else:
        _drop(target[parts[0]], parts[1:])


class _Missing:
    pass


_MISSING = _Missing()


def project(doc: dict, inclusive: bool, paths: list[str], *, exclude_id: bool = False) -> dict:
    if inclusive:
        out: dict = {} if exclude_id else {"id": doc.get("id")}
        for path in paths:
            parts = path.split(".")
            if len(parts) == 1:
                if path in doc:
                    out[path] = copy.deepcopy(doc[path])
                continue
            value = _pick(doc, parts)
            if value is _MISSING:
                continue
            _merge(out, parts, value)
        return out

    out = copy.deepcopy(doc)
    for path in paths:
        _drop(out, path.split("."))
    return out


# =============================================================================
# EXECUTION
# =============================================================================

def _calculate(config: EntityQueryConfig, clauses: list) -> dict | None:
    if not config.calculations:
        return None
    columns = [build(config.model).label(name) for name, build in config.calculations.items()]
    query = db.session.query(*columns).select_from(config.model)
    if clauses:
        query = query.filter(and_(*clauses))
    row = query.one()
    summary = {}
    for name in config.calculations:
        value = getattr(row, name)
        summary[name] = value if value is not None else 0
    return summary


def run_query(config: EntityQueryConfig, request: ListRequest, search: str | None = None) -> dict:
    """
    Execute the list pipeline and return a ResponsePayload dict:
    {success, message, data, count, calculation}.
    """
    filter_ = normalize_filter(config, request.filter or {})
    base = normalize_filter(config, config.base_filter)

    filter_clauses = build_filter_clauses(config, {**filter_, **base})
    search_clause = build_search_clause(config, search)
    match_clauses = filter_clauses + ([search_clause] if search_clause is not None else [])

    order_by = build_order_by(config, request.sort)
    select = request.select if request.select else config.default_select
    inclusive, paths = validate_projection(select)
    exclude_id = "id" in select and not select["id"]
    if inclusive and "id" in paths:
        paths = [p for p in paths if p != "id"]

    try:
        calculation = _calculate(config, match_clauses)

        query = db.session.query(config.model)
        if match_clauses:
            query = query.filter(and_(*match_clauses))
        query = query.order_by(*order_by)

        if request.pagination:
            page = request.pagination
            total = func.count().over().label("total_count")
            rows = query.add_columns(total).offset(page.skip).limit(page.page_size).all()
            if rows:
                count = rows[0].total_count
            elif page.skip:
                # Page past the end: the slice is empty but the total still matters
                count = query.order_by(None).count()
            else:
                count = 0
            objects = [row[0] for row in rows]
        else:
            objects = query.all()
            count = len(objects)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise translate_store_error(exc) from exc

    data = [project(obj.to_dict(), inclusive, paths, exclude_id=exclude_id) for obj in objects]
    return response_payload(True, "Success", data=data, count=count, calculation=calculation)
