"""Relation where the owner stores a list of parent keys in a single field."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from normstore.core.types import (
    Collection,
    Constraint,
    DictionaryOne,
    NormalizedData,
    Record,
    is_identifier,
    key_of,
)
from normstore.relations.base import Relation, RelationKind

if TYPE_CHECKING:
    from normstore.model.model import Model
    from normstore.query.query import Query
    from normstore.schema.schema import Many, Schema


class HasManyBy(Relation):
    """
    Owner references many parents by key, e.g. ``{"id": 1, "tag_ids": [3, 4]}``.

    The matched models keep the order of the owner's key list.
    """

    kind = RelationKind.HAS_MANY_BY

    def __init__(
        self,
        model: type[Model],
        parent: type[Model] | str,
        foreign_key: str,
        owner_key: str | None = None,
    ) -> None:
        super().__init__(model)
        self._parent = parent
        self.foreign_key = foreign_key
        self._owner_key = owner_key

    @property
    def parent(self) -> type[Model]:
        """Parent model class, resolved at use time."""
        return self.resolve(self._parent)

    @property
    def owner_key(self) -> str:
        """Parent field the listed keys refer to."""
        return self._owner_key or self.parent.key_name()

    def target_refs(self) -> list[type[Model] | str]:
        return [self._parent]

    def define(self, schema: Schema) -> Many:
        return schema.many(self._parent)

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Fill the owner's key list from the nested parents when it is absent."""
        if self.foreign_key in record:
            return
        values: list[Any] = []
        for item in self.as_keys(key):
            if not is_identifier(item):
                continue
            parent = self.related_record(data, self.parent.entity, item)
            if parent is not None and parent.get(self.owner_key) is not None:
                values.append(parent[self.owner_key])
            else:
                values.append(item)
        record[self.foreign_key] = values

    def make(self, value: Any, parent: Record, key: str) -> Collection:
        return self.make_many(value, self.parent)

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        keys: list[Any] = []
        for model in collection:
            listed = model.stored(self.foreign_key)
            if isinstance(listed, list):
                keys.extend(listed)
        relation = self.related_query(query, self.parent.entity, constraints)
        relation.where_fk(self.owner_key, keys)
        dictionary: DictionaryOne = {}
        for parent in relation.get():
            value = parent.stored(self.owner_key)
            if value is not None:
                dictionary[key_of(value)] = parent
        for model in collection:
            listed = model.stored(self.foreign_key)
            if not isinstance(listed, list):
                model[name] = []
                continue
            model[name] = [
                dictionary[key_of(item)] for item in listed if key_of(item) in dictionary
            ]
