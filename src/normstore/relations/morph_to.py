"""Polymorphic inverse relation: the owner names both the parent key and its entity."""

from __future__ import annotations

import logging
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
    from normstore.schema.schema import Schema, Union

log = logging.getLogger(__name__)


class MorphTo(Relation):
    """
    Owner belongs to one of several entities, e.g. a comment on a post or a video.

    Parameters
    ----------
    model
        Owning model class.
    id_field
        Owner field holding the parent key.
    type_field
        Owner field holding the parent entity name.
    """

    kind = RelationKind.MORPH_TO

    def __init__(self, model: type[Model], id_field: str, type_field: str) -> None:
        super().__init__(model)
        self.id_field = id_field
        self.type_field = type_field

    def define(self, schema: Schema) -> Union:
        return schema.union(self._resolve_type)

    def _resolve_type(self, value: Record, parent: Record) -> str | None:
        entity = parent.get(self.type_field)
        return entity if isinstance(entity, str) and entity else None

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Fill the owner's id field from the nested parent's key."""
        if self.id_field in record or not is_identifier(key):
            return
        record[self.id_field] = key

    def make(self, value: Any, parent: Record, key: str) -> Model | None:
        """
        Build the parent model using the entity named by the type field.

        Returns
        -------
        Model | None
            Parent model, or ``None`` for a missing or unregistered type.
        """
        entity = parent.get(self.type_field)
        database = self.model.database
        if database is None or not isinstance(entity, str) or not database.has_model(entity):
            return None
        return self.make_one(value, database.model(entity))

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        grouped: dict[str, list[Any]] = {}
        for model in collection:
            entity = model.stored(self.type_field)
            value = model.stored(self.id_field)
            if isinstance(entity, str) and value is not None:
                grouped.setdefault(entity, []).append(value)

        dictionaries: dict[str, DictionaryOne] = {}
        for entity, keys in grouped.items():
            if not query.database.has_model(entity):
                log.debug("Skipping unregistered morph type %s on %s", entity, name)
                continue
            related = query.database.model(entity)
            relation = self.related_query(query, entity, constraints)
            relation.where_fk(related.key_name(), keys)
            dictionaries[entity] = {key_of(parent.get_key()): parent for parent in relation.get()}

        for model in collection:
            entity = model.stored(self.type_field)
            value = model.stored(self.id_field)
            dictionary = dictionaries.get(entity) if isinstance(entity, str) else None
            if dictionary is None or value is None:
                model[name] = None
                continue
            model[name] = dictionary.get(key_of(value))
