"""Polymorphic one-to-one and one-to-many relations from the owner side."""

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
    from normstore.schema.schema import Many, One, Schema


class MorphOne(Relation):
    """
    Owner has one related record tagged with the owner's entity name.

    The related record carries ``id_field`` (owner key) and ``type_field``
    (owner entity), so several owner entities can share one related table.
    """

    kind = RelationKind.MORPH_ONE

    def __init__(
        self,
        model: type[Model],
        related: type[Model] | str,
        id_field: str,
        type_field: str,
        local_key: str | None = None,
    ) -> None:
        super().__init__(model)
        self._related = related
        self.id_field = id_field
        self.type_field = type_field
        self._local_key = local_key

    @property
    def related(self) -> type[Model]:
        """Related model class, resolved at use time."""
        return self.resolve(self._related)

    @property
    def local_key(self) -> str:
        """Owner field copied into the related ``id_field``."""
        return self._local_key or self.model.key_name()

    def target_refs(self) -> list[type[Model] | str]:
        return [self._related]

    def define(self, schema: Schema) -> One | Many:
        return schema.one(self._related)

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Tag every nested related record with the owner's key and entity."""
        entity = self.related.entity
        for item in self.as_keys(key):
            related = self.related_record(data, entity, item)
            if related is None:
                continue
            if self.id_field not in related:
                value = self.local_value(record, self.local_key, self.model)
                if value is not None:
                    related[self.id_field] = value
            if self.type_field not in related:
                related[self.type_field] = self.model.entity

    def make(self, value: Any, parent: Record, key: str) -> Model | Collection | None:
        return self.make_one(value, self.related)

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        relation = self.related_query(query, self.related.entity, constraints)
        relation.where_fk(self.id_field, self.get_keys(collection, self.local_key))
        relation.where(self.type_field, self.model.entity)
        dictionary = self.build_dictionary(relation.get())
        for model in collection:
            local = model.stored(self.local_key)
            matched = dictionary.get(key_of(local)) if local is not None else None
            model[name] = self.pick(matched)

    def build_dictionary(self, relations: Collection) -> DictionaryMany:
        """
        Group related models by their morph id.

        Returns
        -------
        DictionaryMany
            Stringified morph id -> related models in table order.
        """
        dictionary: DictionaryMany = {}
        for relation in relations:
            value = relation.stored(self.id_field)
            if value is None:
                continue
            dictionary.setdefault(key_of(value), []).append(relation)
        return dictionary

    def pick(self, matched: list[Model] | None) -> Model | Collection | None:
        """
        Reduce the matched models to this relation's cardinality.

        Returns
        -------
        Model | Collection | None
            Last matched model, or ``None`` when nothing matched.
        """
        return matched[-1] if matched else None


class MorphMany(MorphOne):
    """Owner has many related records tagged with the owner's entity name."""

    kind = RelationKind.MORPH_MANY

    def define(self, schema: Schema) -> One | Many:
        return schema.many(self._related)

    def make(self, value: Any, parent: Record, key: str) -> Model | Collection | None:
        return self.make_many(value, self.related)

    def pick(self, matched: list[Model] | None) -> Model | Collection | None:
        return list(matched) if matched else []
