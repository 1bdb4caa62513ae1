"""Inverse one-to-one / many-to-one relation where the owner carries the foreign key."""

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
    from normstore.schema.schema import One, Schema


class BelongsTo(Relation):
    """
    Owner belongs to a parent record, e.g. a post belongs to its author.

    Parameters
    ----------
    model
        Owning model class (the side holding the foreign key).
    parent
        Parent model class or entity name.
    foreign_key
        Field on the owner pointing at the parent.
    owner_key
        Parent field the foreign key refers to; defaults to its primary key.
    """

    kind = RelationKind.BELONGS_TO

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
        """Parent field the owner's foreign key refers to."""
        return self._owner_key or self.parent.key_name()

    def target_refs(self) -> list[type[Model] | str]:
        return [self._parent]

    def define(self, schema: Schema) -> One:
        return schema.one(self._parent)

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """
        Set the owner's foreign key from the nested parent.

        The parent's owner key wins when the parent record is part of the
        payload; otherwise the nested key itself is used.
        """
        if self.foreign_key in record or not is_identifier(key):
            return
        parent = self.related_record(data, self.parent.entity, key)
        if parent is not None and parent.get(self.owner_key) is not None:
            record[self.foreign_key] = parent[self.owner_key]
            return
        record[self.foreign_key] = key

    def make(self, value: Any, parent: Record, key: str) -> Model | None:
        return self.make_one(value, self.parent)

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        relation = self.related_query(query, self.parent.entity, constraints)
        relation.where_fk(self.owner_key, self.get_keys(collection, self.foreign_key))
        dictionary: DictionaryOne = {}
        for parent in relation.get():
            value = parent.stored(self.owner_key)
            if value is not None:
                dictionary[key_of(value)] = parent
        for model in collection:
            foreign = model.stored(self.foreign_key)
            model[name] = dictionary.get(key_of(foreign)) if foreign is not None else None
