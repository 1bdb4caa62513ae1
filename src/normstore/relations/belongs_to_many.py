"""Many-to-many relation resolved through a pivot entity."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from normstore.core.types import (
    LOCAL_ID_FIELD,
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


class BelongsToMany(Relation):
    """
    Owner and related records linked by rows of a pivot entity.

    Parameters
    ----------
    model
        Owning model class.
    related
        Related model class or entity name.
    pivot
        Pivot model class or entity name.
    foreign_pivot_key
        Pivot field holding the owner key.
    related_pivot_key
        Pivot field holding the related key.
    parent_key
        Owner field copied into ``foreign_pivot_key``; defaults to its primary key.
    related_key
        Related field copied into ``related_pivot_key``; defaults to its primary key.
    """

    kind = RelationKind.BELONGS_TO_MANY

    def __init__(  # noqa: PLR0913
        self,
        model: type[Model],
        related: type[Model] | str,
        pivot: type[Model] | str,
        foreign_pivot_key: str,
        related_pivot_key: str,
        parent_key: str | None = None,
        related_key: str | None = None,
    ) -> None:
        super().__init__(model)
        self._related = related
        self._pivot = pivot
        self.foreign_pivot_key = foreign_pivot_key
        self.related_pivot_key = related_pivot_key
        self._parent_key = parent_key
        self._related_key = related_key

    @property
    def related(self) -> type[Model]:
        """Related model class, resolved at use time."""
        return self.resolve(self._related)

    @property
    def pivot(self) -> type[Model]:
        """Pivot model class, resolved at use time."""
        return self.resolve(self._pivot)

    @property
    def parent_key(self) -> str:
        """Owner field stored on pivot rows."""
        return self._parent_key or self.model.key_name()

    @property
    def related_key(self) -> str:
        """Related field stored on pivot rows."""
        return self._related_key or self.related.key_name()

    def target_refs(self) -> list[type[Model] | str]:
        return [self._related, self._pivot]

    def define(self, schema: Schema) -> Many:
        return schema.many(self._related)

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """
        Create one pivot record per nested related key.

        Pivot records are keyed ``"<owner>_<related>"`` and existing pivot
        fields are never overwritten.
        """
        parent_value = self.local_value(record, self.parent_key, self.model)
        if parent_value is None:
            return
        for item in self.as_keys(key):
            if not is_identifier(item):
                continue
            related = self.related_record(data, self.related.entity, item)
            related_value = item
            if related is not None and related.get(self.related_key) is not None:
                related_value = related[self.related_key]
            pivot_id = f"{key_of(parent_value)}_{key_of(related_value)}"
            pivots = data.setdefault(self.pivot.entity, {})
            pivot = pivots.setdefault(pivot_id, {LOCAL_ID_FIELD: pivot_id})
            pivot.setdefault(self.foreign_pivot_key, parent_value)
            pivot.setdefault(self.related_pivot_key, related_value)

    def make(self, value: Any, parent: Record, key: str) -> Collection:
        return self.make_many(value, self.related)

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        pivot_query = query.new_query(self.pivot.entity)
        pivot_query.where_fk(self.foreign_pivot_key, self.get_keys(collection, self.parent_key))
        links: dict[str, list[Any]] = {}
        related_keys: list[Any] = []
        for pivot in pivot_query.get():
            owner = pivot.stored(self.foreign_pivot_key)
            target = pivot.stored(self.related_pivot_key)
            if owner is None or target is None:
                continue
            links.setdefault(key_of(owner), []).append(target)
            related_keys.append(target)

        relation = self.related_query(query, self.related.entity, constraints)
        relation.where_fk(self.related_key, related_keys)
        dictionary: DictionaryOne = {}
        for related in relation.get():
            value = related.stored(self.related_key)
            if value is not None:
                dictionary[key_of(value)] = related

        for model in collection:
            local = model.stored(self.parent_key)
            targets = links.get(key_of(local), []) if local is not None else []
            model[name] = [dictionary[key_of(t)] for t in targets if key_of(t) in dictionary]
