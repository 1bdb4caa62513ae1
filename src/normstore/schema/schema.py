"""Structural schema nodes consumed by the normalizer walk."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from normstore.core.types import Record

if TYPE_CHECKING:
    from normstore.database import Database
    from normstore.model.model import Model

UnionResolver = Callable[[Record, Record], "str | None"]
"""Maps ``(value, parent)`` to the entity name the nested value belongs to."""


@dataclass(frozen=True)
class One:
    """Relation field holds a single instance of ``entity``."""

    entity: str


@dataclass(frozen=True)
class Many:
    """Relation field holds a list of ``entity`` instances."""

    entity: str


@dataclass(frozen=True)
class Union:
    """Relation field holds one instance whose entity is resolved per value."""

    resolve: UnionResolver


SchemaNode = One | Many | Union


@dataclass(frozen=True)
class Schema:
    """Builder handed to ``Relation.define`` to describe a relation's structure."""

    database: Database

    def one(self, model: type[Model] | str) -> One:
        """
        Describe a field holding one related instance.

        Returns
        -------
        One
            Structural node pointing at the model's entity.
        """
        return One(entity=self._entity(model))

    def many(self, model: type[Model] | str) -> Many:
        """
        Describe a field holding a list of related instances.

        Returns
        -------
        Many
            Structural node pointing at the model's entity.
        """
        return Many(entity=self._entity(model))

    def union(self, resolve: UnionResolver) -> Union:
        """
        Describe a polymorphic field whose entity comes from ``resolve``.

        Returns
        -------
        Union
            Structural node carrying the resolver.
        """
        return Union(resolve=resolve)

    def _entity(self, model: type[Model] | str) -> str:
        if isinstance(model, str):
            return self.database.model(model).entity
        return model.entity
