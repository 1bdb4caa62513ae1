"""Normalize nested payloads into an entity-indexed store and load them back as related models."""

from normstore.config.models import StoreConfig
from normstore.core.errors import ProblemDetail, ProblemError, SchemaError, StateError
from normstore.database import Database
from normstore.model.attributes import Attr
from normstore.model.model import Model
from normstore.normalizer import NormalizationContext, Normalizer
from normstore.query.query import Query
from normstore.storage.repo import Repo

__all__ = [
    "Attr",
    "Database",
    "Model",
    "NormalizationContext",
    "Normalizer",
    "ProblemDetail",
    "ProblemError",
    "Query",
    "Repo",
    "SchemaError",
    "StateError",
    "StoreConfig",
]
