"""One-to-one relation where the related record carries the foreign key."""

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
    key_of,
)
from normstore.relations.base import Relation, RelationKind

if TYPE_CHECKING:
    from normstore.model.model import Model
    from normstore.query.query import Query
    from normstore.schema.schema import One, Schema

log = logging.getLogger(__name__)


class HasOne(Relation):
    """
    Owner has one related record, e.g. a user has one phone.

    Parameters
    ----------
    model
        Owning model class.
    related
        Related model class or entity name.
    foreign_key
        Field on the related record that points back at the owner.
    local_key
        Field on the owner matched against ``foreign_key``; defaults to the
        owner's primary key.
    """

    kind = RelationKind.HAS_ONE

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
        """
        Return the related model reference.

        Returns
        -------
        list[type[Model] | str]
            Single-element list with the related reference.
        """
        return [self._related]

    def define(self, schema: Schema) -> One:
        """
        Describe the field as holding one related instance.

        Returns
        -------
        One
            Structural node for the related entity.
        """
        return schema.one(self._related)

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """
        Set the related record's foreign key to the owner's local key.

        For example, when a user has one phone, the phone record receives
        ``user_id``. A related record that already carries the foreign key is
        left alone, and a missing related record is a no-op.
        """
        related = self.related_record(data, self.related.entity, key)
        if related is None:
            return
        if self.foreign_key in related:
            return
        value = self.local_value(record, self.local_key, self.model)
        if value is None:
            return
        related[self.foreign_key] = value

    def make(self, value: Any, parent: Record, key: str) -> Model | None:
        """
        Convert a stored value into the related model.

        Returns
        -------
        Model | None
            Related model, or ``None`` when the value is not a single reference.
        """
        return self.make_one(value, self.related)

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        """Eager-load the related model onto every model in ``collection``."""
        relation = self.related_query(query, self.related.entity, constraints)
        relation.where_fk(self.foreign_key, self.get_keys(collection, self.local_key))
        dictionary = self.build_dictionary(relation.get())
        log.debug(
            "Matched %d %s record(s) onto %d %s model(s)",
            len(dictionary),
            self.related.entity,
            len(collection),
            self.model.entity,
        )
        for model in collection:
            local = model.stored(self.local_key)
            model[name] = dictionary.get(key_of(local)) if local is not None else None

    def build_dictionary(self, relations: Collection) -> DictionaryOne:
        """
        Index related models by their foreign key.

        Returns
        -------
        DictionaryOne
            Stringified foreign key -> related model; later rows win.
        """
        dictionary: DictionaryOne = {}
        for relation in relations:
            value = relation.stored(self.foreign_key)
            if value is None:
                continue
            dictionary[key_of(value)] = relation
        return dictionary
