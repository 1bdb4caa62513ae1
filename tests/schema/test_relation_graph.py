"""Relation graph construction, validation, and database boot."""

from __future__ import annotations

import logging

import pytest

from normstore.config.models import StoreConfig
from normstore.core.errors import SchemaError
from normstore.database import Database
from normstore.model.model import FieldDef, Model
from normstore.schema.graph import build_relation_graph, relation_cycles, validate_relation_graph
from tests._helpers.expect import expect_equal, expect_in, expect_problem, expect_true


class Author(Model):
    entity = "authors"

    @classmethod
    def fields(cls) -> dict[str, FieldDef]:
        return {
            "id": cls.attr(None),
            "books": cls.has_many("books", "author_id"),
            "publisher": cls.belongs_to("publishers", "publisher_id"),
        }


class Book(Model):
    entity = "books"

    @classmethod
    def fields(cls) -> dict[str, FieldDef]:
        return {
            "id": cls.attr(None),
            "author_id": cls.attr(None),
            "author": cls.belongs_to(Author, "author_id"),
        }


class Nameless(Model):
    pass


def test_graph_has_edge_per_relation(database: Database) -> None:
    """Edges are keyed by field and carry the relation kind."""
    graph = database.relation_graph()

    expect_true(graph.has_edge("users", "posts", key="posts"), message="users.posts edge missing")
    expect_equal(graph.edges["posts", "users", "author"]["kind"], "belongs_to")
    expect_true(graph.has_edge("users", "role_user", key="roles"), message="pivot edge missing")


def test_cycles_are_reported(database: Database) -> None:
    """Mutually nested entities form a cycle."""
    cycles = relation_cycles(database.relation_graph())

    expect_in(["posts", "users"], cycles)


def test_unresolved_target_is_a_finding() -> None:
    """A relation to an unregistered entity produces one finding."""
    models = {"authors": Author, "books": Book}

    findings = validate_relation_graph(build_relation_graph(models), models)

    expect_equal([finding.target for finding in findings], ["publishers"])
    expect_equal(findings[0].to_dict()["field"], "publisher")


def test_strict_boot_raises_on_unresolved_target(caplog: pytest.LogCaptureFixture) -> None:
    """Strict databases refuse to boot with dangling relations."""
    database = Database()
    database.register_all([Author, Book])

    with caplog.at_level(logging.ERROR), pytest.raises(SchemaError) as excinfo:
        database.boot()

    expect_problem(excinfo.value, "schema.unresolved_relation")
    expect_in("schema.unresolved_relation", caplog.text)


def test_lenient_boot_warns(caplog: pytest.LogCaptureFixture) -> None:
    """With strict relations off, dangling relations only warn."""
    database = Database(StoreConfig(strict_relations=False))
    database.register_all([Author, Book])

    with caplog.at_level(logging.WARNING):
        graph = database.boot()

    expect_in("publishers", caplog.text)
    expect_in("authors", graph.nodes)


def test_register_requires_entity_name() -> None:
    """A model without an entity name cannot be registered."""
    with pytest.raises(SchemaError) as excinfo:
        Database().register(Nameless)

    expect_problem(excinfo.value, "schema.missing_entity_name")


def test_register_builds_initial_state() -> None:
    """Every registered entity gets an empty table under the namespace."""
    database = Database(StoreConfig(namespace="orm"))
    database.register_all([Author, Book])

    expect_equal(database.state, {"name": "orm", "authors": {"data": {}}, "books": {"data": {}}})
    expect_equal(database.initial_state(), database.state)
    expect_true(Book.database is database, message="Model should be bound on register")


def test_unregistered_model_has_no_database() -> None:
    """Queries on a model that was never registered fail."""

    class Loose(Model):
        entity = "loose"

    with pytest.raises(SchemaError) as excinfo:
        Loose.query()

    expect_problem(excinfo.value, "schema.unregistered_model")
