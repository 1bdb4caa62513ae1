"""Shared relation contract and helpers used by every relation variant."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from normstore.core.types import (
    LOCAL_ID_FIELD,
    Collection,
    Constraint,
    NormalizedData,
    Record,
    is_identifier,
    is_record,
    key_of,
)

if TYPE_CHECKING:
    from normstore.model.model import Model
    from normstore.query.query import Query
    from normstore.schema.schema import Schema, SchemaNode


class RelationKind(Enum):
    """Closed set of relation variants."""

    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    HAS_MANY_BY = "has_many_by"
    BELONGS_TO_MANY = "belongs_to_many"
    MORPH_TO = "morph_to"
    MORPH_ONE = "morph_one"
    MORPH_MANY = "morph_many"


class RelationContract(Protocol):
    """Capability interface every relation variant implements."""

    def define(self, schema: Schema) -> SchemaNode:
        """Return the structural node the normalizer walks for this field."""
        ...

    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Backfill linkage keys once the payload is fully decomposed."""
        ...

    def make(self, value: Any, parent: Record, key: str) -> Model | Collection | None:
        """Convert a raw field value into related model(s)."""
        ...

    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        """Eager-load the relation onto every model in ``collection``."""
        ...


class Relation(ABC):
    """
    Base class for relation definitions.

    Related models are held as given (class or entity name) and resolved
    through the owning model's database on each use, so models may reference
    each other before both are registered.
    """

    kind: ClassVar[RelationKind]

    def __init__(self, model: type[Model]) -> None:
        self.model = model

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.model.__name__})"

    @abstractmethod
    def define(self, schema: Schema) -> SchemaNode:
        """Return the structural node the normalizer walks for this field."""

    @abstractmethod
    def attach(self, key: Any, record: Record, data: NormalizedData) -> None:
        """Backfill linkage keys once the payload is fully decomposed."""

    @abstractmethod
    def make(self, value: Any, parent: Record, key: str) -> Model | Collection | None:
        """Convert a raw field value into related model(s)."""

    @abstractmethod
    def load(
        self,
        query: Query,
        collection: Collection,
        name: str,
        constraints: Sequence[Constraint],
    ) -> None:
        """Eager-load the relation onto every model in ``collection``."""

    def target_refs(self) -> list[type[Model] | str]:
        """
        Return the unresolved model references this relation points at.

        Returns
        -------
        list[type[Model] | str]
            Model classes or entity names; empty for polymorphic targets.
        """
        return []

    def resolve(self, ref: type[Model] | str) -> type[Model]:
        """
        Resolve a model reference through the owning model's database.

        Returns
        -------
        type[Model]
            The registered model class.
        """
        return self.model.resolve(ref)

    def related_query(
        self,
        query: Query,
        entity: str,
        constraints: Sequence[Constraint] = (),
    ) -> Query:
        """
        Build a sub-query on ``entity`` with the eager-load constraints applied.

        Returns
        -------
        Query
            Fresh query bound to the same database as ``query``.
        """
        relation = query.new_query(entity)
        for constraint in constraints:
            constraint(relation)
        return relation

    @staticmethod
    def get_keys(collection: Iterable[Model], key: str) -> list[Any]:
        """
        Collect distinct non-null values of ``key`` across the collection.

        Returns
        -------
        list[Any]
            Values in first-seen order.
        """
        seen: set[str] = set()
        keys: list[Any] = []
        for model in collection:
            value = model.stored(key)
            if value is None or key_of(value) in seen:
                continue
            seen.add(key_of(value))
            keys.append(value)
        return keys

    @staticmethod
    def local_value(record: Record, local_key: str, model: type[Model]) -> Any:
        """
        Return the owner's local key value, falling back to its ``$id``.

        The fallback value is written back onto the record so the linkage
        stays resolvable after commit.

        Returns
        -------
        Any
            Local key value, or ``None`` when the record has no usable key.
        """
        value = record.get(local_key)
        if value is not None:
            return value
        fallback = record.get(LOCAL_ID_FIELD)
        if fallback is None:
            fallback = model.get_id(record)
        if fallback is not None:
            record[local_key] = fallback
        return fallback

    @staticmethod
    def related_record(data: NormalizedData, entity: str, key: Any) -> Record | None:
        """
        Look up a related record in the normalized snapshot.

        Returns
        -------
        Record | None
            Record stored under ``key``, or ``None`` when absent.
        """
        if not is_identifier(key):
            return None
        bucket = data.get(entity)
        if not bucket:
            return None
        return bucket.get(key_of(key))

    @staticmethod
    def make_one(value: Any, related: type[Model]) -> Model | None:
        """
        Build a single related model from an embedded record or an identifier.

        Returns
        -------
        Model | None
            Constructed or looked-up model; ``None`` for other values.
        """
        if is_record(value):
            return related(value)
        if is_identifier(value):
            return related.find(value)
        return None

    @classmethod
    def make_many(cls, value: Any, related: type[Model]) -> Collection:
        """
        Build a collection of related models from a list value.

        Returns
        -------
        Collection
            Models for every resolvable entry; empty for non-list values.
        """
        if not isinstance(value, list):
            return []
        models = [cls.make_one(item, related) for item in value]
        return [model for model in models if model is not None]

    @staticmethod
    def as_keys(key: Any) -> list[Any]:
        """
        Normalize an attach key argument to a list of keys.

        Returns
        -------
        list[Any]
            ``key`` itself when it is a list, otherwise a one-element list.
        """
        if isinstance(key, list):
            return key
        return [key]
