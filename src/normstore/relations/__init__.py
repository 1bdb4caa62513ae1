"""Relation definitions sharing the define/attach/make/load contract."""

from normstore.relations.base import Relation, RelationContract, RelationKind
from normstore.relations.belongs_to import BelongsTo
from normstore.relations.belongs_to_many import BelongsToMany
from normstore.relations.has_many import HasMany
from normstore.relations.has_many_by import HasManyBy
from normstore.relations.has_one import HasOne
from normstore.relations.morph_one import MorphMany, MorphOne
from normstore.relations.morph_to import MorphTo

__all__ = [
    "BelongsTo",
    "BelongsToMany",
    "HasMany",
    "HasManyBy",
    "HasOne",
    "MorphMany",
    "MorphOne",
    "MorphTo",
    "Relation",
    "RelationContract",
    "RelationKind",
]
