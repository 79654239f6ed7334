"""
Generic CRUD handler factory.

Each factory function takes an Entity descriptor and returns a FastAPI
endpoint. Routers mount them with `router.add_api_route(...)` and attach the
auth dependencies there. Persistence side effects (slugs, rating
recomputation, M2M guides) live in the entity's `create` / `update` /
`delete` hooks so they are visible where the entity is defined.

Success responses all use the same envelope:

    {"status": "success", "data": {"data": <document or list>}}
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Type

from fastapi import Request, Response, status
from pydantic import BaseModel
from tortoise.models import Model
from tortoise.queryset import QuerySet

from natours.core.errors import InvalidIdentifierError, NotFoundError
from natours.services.query_features import QueryFeatures

CreateHook = Callable[[dict, Request], Awaitable[Model]]
UpdateHook = Callable[[Model, dict, Request], Awaitable[Model]]
DeleteHook = Callable[[Model, Request], Awaitable[None]]


@dataclass
class Entity:
    """Describes one collection to the handler factory."""

    name: str
    model: Type[Model]
    serialize: Callable[..., dict]
    # API (camelCase) name -> column, for filtering and sorting
    filter_fields: Mapping[str, str]
    create_schema: Optional[Type[BaseModel]] = None
    update_schema: Optional[Type[BaseModel]] = None
    hidden_fields: frozenset = frozenset()
    prefetch: Sequence[str] = ()
    # Constraint applied to every read, e.g. {"secret_tour": False}
    base_filter: Mapping[str, Any] = field(default_factory=dict)
    # (path parameter, column) used by nested routes such as /tours/{tour_id}/reviews
    parent: Optional[tuple[str, str]] = None
    create: Optional[CreateHook] = None
    update: Optional[UpdateHook] = None
    delete: Optional[DeleteHook] = None

    def queryset(self) -> QuerySet:
        return self.model.filter(**self.base_filter)


def parse_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdentifierError(raw)


async def get_document(entity: Entity, raw_id: str, populate: Sequence[str] = ()) -> Model:
    """Fetch by id through the entity's base filter; NotFound / InvalidIdentifier otherwise."""
    doc = await entity.queryset().get_or_none(id=parse_id(raw_id))
    if doc is None:
        raise NotFoundError()
    relations = [*entity.prefetch, *populate]
    if relations:
        await doc.fetch_related(*relations)
    return doc


def _envelope(data) -> dict:
    return {"status": "success", "data": {"data": data}}


async def _default_create(entity: Entity, values: dict) -> Model:
    return await entity.model.create(**values)


async def _default_update(doc: Model, values: dict) -> Model:
    doc.update_from_dict(values)
    await doc.save()
    return doc


def get_all(entity: Entity, preset: Optional[Mapping[str, str]] = None):
    async def handler(request: Request):
        params = {**request.query_params, **(preset or {})}
        qs = entity.queryset()
        if entity.parent is not None:
            param, column = entity.parent
            parent_id = request.path_params.get(param)
            if parent_id is not None:
                qs = qs.filter(**{column: parse_id(parent_id)})
        if entity.prefetch:
            qs = qs.prefetch_related(*entity.prefetch)

        features = QueryFeatures(qs, params, entity)
        features.filter().sort().limit_fields().paginate()
        docs = await features.queryset

        data = [features.project(entity.serialize(d)) for d in docs]
        return {"status": "success", "results": len(data), "data": {"data": data}}

    handler.__name__ = f"get_all_{entity.name}"
    return handler


def get_one(entity: Entity, populate: Sequence[str] = ()):
    async def handler(id: str):
        doc = await get_document(entity, id, populate)
        return _envelope(entity.serialize(doc, populate=tuple(populate)))

    handler.__name__ = f"get_{entity.name}"
    return handler


def create_one(entity: Entity):
    schema = entity.create_schema

    async def handler(request: Request, body: schema):
        values = body.model_dump()
        if entity.create is not None:
            doc = await entity.create(values, request)
        else:
            doc = await _default_create(entity, values)
        if entity.prefetch:
            await doc.fetch_related(*entity.prefetch)
        return _envelope(entity.serialize(doc))

    handler.__name__ = f"create_{entity.name}"
    return handler


def update_one(entity: Entity):
    schema = entity.update_schema

    async def handler(id: str, request: Request, body: schema):
        doc = await get_document(entity, id)
        values = body.model_dump(exclude_unset=True)
        if entity.update is not None:
            doc = await entity.update(doc, values, request)
        else:
            doc = await _default_update(doc, values)
        if entity.prefetch:
            await doc.fetch_related(*entity.prefetch)
        return _envelope(entity.serialize(doc))

    handler.__name__ = f"update_{entity.name}"
    return handler


def delete_one(entity: Entity):
    async def handler(id: str, request: Request):
        doc = await get_document(entity, id)
        if entity.delete is not None:
            await entity.delete(doc, request)
        else:
            await doc.delete()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    handler.__name__ = f"delete_{entity.name}"
    return handler
