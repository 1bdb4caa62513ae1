"""Structural schema nodes and the entity relation graph."""

from normstore.schema.graph import (
    RelationFinding,
    build_relation_graph,
    relation_cycles,
    validate_relation_graph,
)
from normstore.schema.schema import Many, One, Schema, SchemaNode, Union

__all__ = [
    "Many",
    "One",
    "RelationFinding",
    "Schema",
    "SchemaNode",
    "Union",
    "build_relation_graph",
    "relation_cycles",
    "validate_relation_graph",
]
