"""One-to-many relation where each related record carries the foreign key."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from normstore.core.types import (
    Collection,
    Constraint,
    DictionaryMany,
    NormalizedData,
    Record,
    key_of,
)
from normstore.relations.base import Relation, RelationKind

if TYPE_CHECKING:
    from normstore.model.model import Model
    from normstore.query.query import Query
    from normstore.schema.schema import Many, Schema


class HasMany(Relation):
    """Owner has many related records, e.g. a post has many comments."""

    kind = RelationKind.HAS_MANY

    def __init__(
        self,
        model: type[Model],
        related: type[Model] | str,
        foreign_key: str,
        local_key: str | None = None,
    ) -> None:
        super().__init__(model)
        self._related = related
        self.foreign_key = foreign_key
        self._local_key = local_key

    @property
    def related(self) -> type[Model]:
        """Related model class, resolved at use time."""
        return self.resolve(self._related)

    @property
    def local_key(self) -> str:
        """Owner field matched against the related foreign key."""
        return self._local_key or self.model.key_name()

    def target_refs(self) -> list[type[Model] | str]:
        return [self._related]

    def define(self, schema: Schema) -> Many:
        return schema.many(self._related)

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Set the foreign key on every related record that lacks one."""
        entity = self.related.entity
        for item in self.as_keys(key):
            related = self.related_record(data, entity, item)
            if related is None or self.foreign_key in related:
                continue
            value = self.local_value(record, self.local_key, self.model)
            if value is None:
                return
            related[self.foreign_key] = value

    def make(self, value: Any, parent: Record, key: str) -> Collection:
        return self.make_many(value, self.related)

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        relation = self.related_query(query, self.related.entity, constraints)
        relation.where_fk(self.foreign_key, self.get_keys(collection, self.local_key))
        dictionary = self.build_dictionary(relation.get())
        for model in collection:
            local = model.stored(self.local_key)
            matched = dictionary.get(key_of(local)) if local is not None else None
            model[name] = list(matched) if matched else []

    def build_dictionary(self, relations: Collection) -> DictionaryMany:
        """
        Group related models by their foreign key.

        Returns
        -------
        DictionaryMany
            Stringified foreign key -> related models in table order.
        """
        dictionary: DictionaryMany = {}
        for relation in relations:
            value = relation.stored(self.foreign_key)
            if value is None:
                continue
            dictionary.setdefault(key_of(value), []).append(relation)
        return dictionary
