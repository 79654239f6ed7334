"""
Query feature builder.

Turns list query strings such as

    ?difficulty=easy&duration[gte]=5&sort=-price,name&fields=name,price&page=2&limit=10

into a Tortoise queryset: filter -> sort -> field selection -> pagination.
Each stage has a pure parser so the translation can be tested without a
database; QueryFeatures chains them over a queryset.
"""
import datetime as dt
import re
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from tortoise.queryset import QuerySet

from natours.core.errors import BadRequestError

if TYPE_CHECKING:
    from natours.services.handler_factory import Entity

RESERVED_PARAMS = frozenset({"page", "sort", "limit", "fields"})
OPERATORS = ("gte", "gt", "lte", "lt")

DEFAULT_SORT = "-createdAt"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100

_FILTER_KEY = re.compile(r"^(?P<field>[A-Za-z_]\w*)(?:\[(?P<op>\w+)\])?$")
_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


def coerce_value(field, raw: str):
    """Convert a query-string value to the python type of a model field."""
    enum_type = getattr(field, "enum_type", None)
    if enum_type is not None:
        return enum_type(raw)
    field_type = getattr(field, "field_type", str)
    if field_type is bool:
        value = raw.lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ValueError(raw)
    if field_type is dt.datetime:
        return dt.datetime.fromisoformat(raw)
    if isinstance(field_type, type) and issubclass(field_type, Enum):
        return field_type(raw)
    if field_type in (int, float):
        return field_type(raw)
    return raw


def parse_filters(params: Mapping[str, str], entity: "Entity") -> dict:
    """
    Map non-reserved query params to Tortoise filter kwargs.

    `price=500` -> {"price": 500.0}; `price[gte]=500` -> {"price__gte": 500.0}
    """
    fields_map = entity.model._meta.fields_map
    filters = {}
    for key, raw in params.items():
        if key in RESERVED_PARAMS:
            continue
        match = _FILTER_KEY.match(key)
        if not match:
            raise BadRequestError(f"Invalid query parameter: {key}")
        api_name, op = match.group("field"), match.group("op")
        column = entity.filter_fields.get(api_name)
        if column is None:
            raise BadRequestError(f"Invalid query field: {api_name}")
        if op is not None and op not in OPERATORS:
            raise BadRequestError(f"Invalid query operator: {op}")
        try:
            value = coerce_value(fields_map[column], raw)
        except (ValueError, TypeError):
            raise BadRequestError(f"Invalid value for {api_name}: {raw}")
        filters[f"{column}__{op}" if op else column] = value
    return filters


def parse_sort(sort: Optional[str], entity: "Entity") -> list[str]:
    """`-price,name` -> ["-price", "name"] in column names."""
    order = []
    for token in (sort or DEFAULT_SORT).split(","):
        token = token.strip()
        if not token:
            continue
        descending = token.startswith("-")
        api_name = token.lstrip("-")
        column = entity.filter_fields.get(api_name)
        if column is None:
            raise BadRequestError(f"Invalid sort field: {api_name}")
        order.append(f"-{column}" if descending else column)
    return order


def parse_fields(fields: Optional[str]) -> tuple[Optional[set], set]:
    """
    `name,price` -> ({"name", "price"}, set())
    `-summary`   -> (None, {"summary"})
    """
    if not fields:
        return None, set()
    include, exclude = set(), set()
    for token in fields.split(","):
        token = token.strip()
        if not token:
            continue
        if token.startswith("-"):
            exclude.add(token[1:])
        else:
            include.add(token)
    return (include or None), exclude


def parse_pagination(page: Optional[str], limit: Optional[str]) -> tuple[int, int]:
    """1-based page and page size -> (offset, limit)."""
    try:
        page_no = int(page) if page is not None else DEFAULT_PAGE
        size = int(limit) if limit is not None else DEFAULT_LIMIT
    except ValueError:
        raise BadRequestError("page and limit must be integers")
    if page_no < 1 or size < 1:
        raise BadRequestError("page and limit must be positive")
    return (page_no - 1) * size, size


def project(doc: dict, include: Optional[Iterable[str]], exclude: Iterable[str]) -> dict:
    """Apply a field selection to a serialized document; id is always kept."""
    if include is not None:
        keep = set(include) | {"id"}
        return {k: v for k, v in doc.items() if k in keep}
    drop = set(exclude) - {"id"}
    return {k: v for k, v in doc.items() if k not in drop}


class QueryFeatures:
    """
    Fluent builder over a Tortoise queryset.

        features = QueryFeatures(Tour.all(), request.query_params, TOURS)
        features.filter().sort().limit_fields().paginate()
        rows = await features.queryset
        docs = [features.project(serialize(r)) for r in rows]

    Sort is applied to the filtered set before pagination slices it.
    """

    def __init__(self, queryset: QuerySet, params: Mapping[str, str], entity: "Entity"):
        self.queryset = queryset
        self.params = params
        self.entity = entity
        self.include: Optional[set] = None
        self.exclude: set = set(entity.hidden_fields)

    def filter(self) -> "QueryFeatures":
        self.queryset = self.queryset.filter(**parse_filters(self.params, self.entity))
        return self

    def sort(self) -> "QueryFeatures":
        self.queryset = self.queryset.order_by(*parse_sort(self.params.get("sort"), self.entity))
        return self

    def limit_fields(self) -> "QueryFeatures":
        include, exclude = parse_fields(self.params.get("fields"))
        if include is not None:
            self.include, self.exclude = include, exclude
        elif exclude:
            # Exclusions add to the entity's hidden fields
            self.exclude = exclude | set(self.entity.hidden_fields)
        return self

    def paginate(self) -> "QueryFeatures":
        offset, limit = parse_pagination(self.params.get("page"), self.params.get("limit"))
        self.queryset = self.queryset.offset(offset).limit(limit)
        return self

    def project(self, doc: dict) -> dict:
        return project(doc, self.include, self.exclude)
