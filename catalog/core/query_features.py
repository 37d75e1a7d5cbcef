"""Paginated, sorted, searched and filtered listing queries.

Raw request parameters are untyped strings. The composer splits them into
pagination, sort, search and filter parts and applies each to a SQLAlchemy
select:

    ?page=2&size=5&sort=pages desc&title=dune&pages[gte]=100&language[in]=en,fr

Filters go through a small interpreter: each recognized operator token
(gt, gte, lt, lte, in, nin, eq, ne, regex) maps to one column comparison.
Unknown operators are dropped and unknown fields ignored, so no caller key
reaches the query unvetted.

Examples:
    >>> rewrite_filters({"price": {"gte": 100}})
    {'price': {'$gte': 100}}
    >>> composer = QueryFeatureComposer(Book, search_fields=BOOK_SEARCH_FIELDS)
    >>> query = composer.compose({"page": "2", "sort": "title asc"})

Tests:
    - tests/unit/test_query_features.py
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from sqlalchemy import Select, inspect, select
from sqlalchemy.sql.elements import ColumnElement

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
RESERVED_PARAMS = frozenset({"page", "size", "sort"})
BOOK_SEARCH_FIELDS = ("title", "description", "language", "release_date")

_BRACKET = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)\[(?P<op>\$?[A-Za-z]+)\]$")


def _gt(col, v):
    return col > v


def _gte(col, v):
    return col >= v


def _lt(col, v):
    return col < v


def _lte(col, v):
    return col <= v


def _eq(col, v):
    return col == v


def _ne(col, v):
    return col != v


def _in(col, v):
    return col.in_(_as_list(v))


def _nin(col, v):
    return col.not_in(_as_list(v))


def _regex(col, v):
    return col.regexp_match(str(v))


OPERATORS = {
    "gt": _gt,
    "gte": _gte,
    "lt": _lt,
    "lte": _lte,
    "in": _in,
    "nin": _nin,
    "eq": _eq,
    "ne": _ne,
    "regex": _regex,
}
LIST_OPERATORS = frozenset({"in", "nin"})


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


def _token(key: str) -> str | None:
    """Operator token for a key in either raw (gte) or rewritten ($gte) form."""
    bare = key[1:] if key.startswith("$") else key
    return bare if bare in OPERATORS else None


def rewrite_filters(filters: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Rewrite operator keys into `$op` form.

    Applying it to its own output returns an equal dict. Scalars become
    `$eq`; keys outside the operator vocabulary are dropped.

    Examples:
        >>> rewrite_filters({"pages": {"gte": 100, "bogus": 1}, "language": "en"})
        {'pages': {'$gte': 100}, 'language': {'$eq': 'en'}}
    """
    rewritten: dict[str, dict[str, Any]] = {}
    for name, expr in filters.items():
        if not isinstance(expr, Mapping):
            rewritten[name] = {"$eq": expr}
            continue
        ops = {}
        for key, value in expr.items():
            token = _token(key)
            if token is None:
                logger.debug(f"Dropping unknown filter operator {key!r} on {name}")
                continue
            ops[f"${token}"] = value
        if ops:
            rewritten[name] = ops
    return rewritten


def parse_bracket_params(
    params: Mapping[str, Any] | Iterable[tuple[str, Any]],
) -> tuple[dict[str, Any], dict[str, dict[str, Any]]]:
    """Split flat query params into plain values and bracketed expressions.

    Examples:
        >>> parse_bracket_params([("title", "dune"), ("pages[gte]", "100")])
        ({'title': 'dune'}, {'pages': {'gte': '100'}})
    """
    items = params.items() if isinstance(params, Mapping) else params
    plain: dict[str, Any] = {}
    nested: dict[str, dict[str, Any]] = {}
    for key, value in items:
        match = _BRACKET.match(key)
        if match:
            nested.setdefault(match.group("field"), {})[match.group("op")] = value
        elif isinstance(value, Mapping):
            nested.setdefault(key, {}).update(value)
        else:
            plain[key] = value
    return plain, nested


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def paginate(page: Any = None, size: Any = None, default_size: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    """Return (limit, skip). Page below 1 or missing is page 1.

    Examples:
        >>> paginate(0, None)
        (10, 0)
        >>> paginate("3", "5")
        (5, 10)
    """
    limit = _to_int(size, default_size)
    if limit < 1:
        limit = default_size
    page_number = max(_to_int(page, 1), 1)
    return limit, (page_number - 1) * limit


@dataclass
class QueryPlan:
    """Parsed listing parameters."""

    page: int
    limit: int
    skip: int
    sort_field: str
    descending: bool
    search: dict[str, Any] = field(default_factory=dict)
    filters: dict[str, dict[str, Any]] = field(default_factory=dict)


class QueryFeatureComposer:
    """Builds a listing select for one model.

    Attributes:
        model: Mapped class being listed.
        search_fields: Columns matched by case-insensitive substring.
        exact_fields: Columns matched by equality in search.
        default_sort: Column used when no valid sort is given (descending).
    """

    def __init__(
        self,
        model: type,
        search_fields: Iterable[str] = (),
        exact_fields: Iterable[str] = ("id",),
        default_sort: str = "created_at",
        default_size: int = DEFAULT_PAGE_SIZE,
        max_size: int | None = None,
    ) -> None:
        self.model = model
        self.columns = {c.key: c for c in inspect(model).column_attrs}
        self.search_fields = tuple(search_fields)
        self.exact_fields = tuple(exact_fields)
        self.default_sort = default_sort
        self.default_size = default_size
        self.max_size = max_size

    def _column(self, name: str) -> ColumnElement | None:
        if name not in self.columns:
            return None
        return getattr(self.model, name)

    def _coerce(self, name: str, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        try:
            python_type = self.columns[name].columns[0].type.python_type
        except (NotImplementedError, IndexError, KeyError):
            return value
        if python_type is bool:
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
            return value
        if python_type in (int, float):
            try:
                return python_type(value)
            except ValueError:
                return value
        return value

    def parse_sort(self, sort: str | None) -> tuple[str, bool]:
        """Parse 'field direction'. Returns (column, descending).

        Examples:
            >>> composer.parse_sort("pages desc")
            ('pages', True)
            >>> composer.parse_sort(None)
            ('created_at', True)
        """
        if not sort or not str(sort).strip():
            return self.default_sort, True
        parts = str(sort).split()
        name = parts[0]
        direction = parts[1].lower() if len(parts) > 1 else "asc"
        if name not in self.columns or direction not in ("asc", "desc"):
            logger.debug(f"Ignoring sort {sort!r} on {self.model.__name__}")
            return self.default_sort, True
        return name, direction == "desc"

    def plan(self, raw_params: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> QueryPlan:
        plain, nested = parse_bracket_params(raw_params)
        limit, skip = paginate(plain.get("page"), plain.get("size"), self.default_size)
        if self.max_size is not None:
            limit = min(limit, self.max_size)
            skip = (max(_to_int(plain.get("page"), 1), 1) - 1) * limit
        sort_field, descending = self.parse_sort(plain.get("sort"))

        search: dict[str, Any] = {}
        filters: dict[str, Any] = dict(nested)
        for name, value in plain.items():
            if name in RESERVED_PARAMS or value in (None, ""):
                continue
            if name in self.search_fields or name in self.exact_fields:
                search[name] = value
            else:
                filters[name] = value

        return QueryPlan(
            page=skip // limit + 1,
            limit=limit,
            skip=skip,
            sort_field=sort_field,
            descending=descending,
            search=search,
            filters=rewrite_filters(filters),
        )

    def search_clauses(self, search: Mapping[str, Any]) -> list[ColumnElement]:
        clauses = []
        for name, value in search.items():
            column = self._column(name)
            if column is None:
                continue
            if name in self.exact_fields:
                clauses.append(column == value)
            else:
                clauses.append(column.icontains(str(value), autoescape=True))
        return clauses

    def filter_clauses(self, filters: Mapping[str, Mapping[str, Any]]) -> list[ColumnElement]:
        clauses = []
        for name, ops in rewrite_filters(filters).items():
            column = self._column(name)
            if column is None:
                logger.debug(f"Ignoring filter on unknown field {name!r}")
                continue
            for key, value in ops.items():
                token = key[1:]
                if token in LIST_OPERATORS:
                    value = [self._coerce(name, v) for v in _as_list(value)]
                elif token != "regex":
                    value = self._coerce(name, value)
                clauses.append(OPERATORS[token](column, value))
        return clauses

    def compose(
        self,
        raw_params: Mapping[str, Any] | Iterable[tuple[str, Any]],
        base_query: Select | None = None,
    ) -> Select:
        """Refine `base_query` (default: select all of the model)."""
        return self.apply(self.plan(raw_params), base_query)

    def apply(self, plan: QueryPlan, base_query: Select | None = None) -> Select:
        query = base_query if base_query is not None else select(self.model)

        clauses = self.search_clauses(plan.search) + self.filter_clauses(plan.filters)
        if clauses:
            query = query.where(*clauses)

        order = getattr(self.model, plan.sort_field)
        query = query.order_by(order.desc() if plan.descending else order.asc())
        if plan.sort_field != "id" and "id" in self.columns:
            query = query.order_by(self.model.id)

        return query.limit(plan.limit).offset(plan.skip)
