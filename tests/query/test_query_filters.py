"""Query filtering, lookup, and eager-load registration."""

from __future__ import annotations

import pytest

from normstore.core.errors import SchemaError, StateError
from normstore.database import Database
from tests._helpers.expect import expect_equal, expect_is_instance, expect_problem, expect_true
from tests._helpers.models import Post, User


@pytest.fixture
def seeded(database: Database) -> Database:
    """Database with three users and their posts.

    Returns
    -------
    Database
        Database whose default state holds users and posts.
    """
    database.create(
        "users",
        [
            {"id": 1, "name": "John", "posts": [{"id": 1, "title": "A"}, {"id": 2, "title": "B"}]},
            {"id": 2, "name": "Jane", "posts": [{"id": 3, "title": "C"}]},
            {"id": 3, "name": "Johnny"},
        ],
    )
    return database


def test_get_returns_models_in_table_order(seeded: Database) -> None:
    """Rows hydrate into the entity's model class."""
    users = seeded.query("users").get()

    expect_equal([user.id for user in users], [1, 2, 3])
    expect_is_instance(users[0], User)


def test_where_equality_and_predicates(seeded: Database) -> None:
    """Field equality, field predicates, and record predicates all filter rows."""
    by_value = seeded.query("users").where("name", "Jane").get()
    by_field = seeded.query("users").where("name", lambda name: name.startswith("John")).get()
    by_record = seeded.query("users").where(lambda record: record["id"] > 1).get()

    expect_equal([user.id for user in by_value], [2])
    expect_equal([user.id for user in by_field], [1, 3])
    expect_equal([user.id for user in by_record], [2, 3])


def test_where_fk_matches_stringified_keys(seeded: Database) -> None:
    """Keys given as strings match integer fields and vice versa."""
    posts = seeded.query("posts").where_fk("user_id", ["1", None]).get()

    expect_equal([post.id for post in posts], [1, 2])


def test_first_find_and_all(seeded: Database) -> None:
    """Lookup helpers return a model or None."""
    query = seeded.query("users")

    expect_equal(query.first().name, "John")
    expect_equal(seeded.query("users").find("2").name, "Jane")
    expect_true(seeded.query("users").find(99) is None, message="Missing key should give None")
    expect_true(seeded.query("users").find(None) is None, message="None key should give None")
    expect_equal(len(seeded.query("posts").all()), 3)
    expect_true(
        seeded.query("users").where("name", "Nobody").first() is None,
        message="Empty result should give None",
    )


def test_find_respects_filters(seeded: Database) -> None:
    """A filtered-out record is not found."""
    expect_true(
        seeded.query("users").where("name", "Jane").find(1) is None,
        message="Filtered record should not be found",
    )


def test_model_class_shortcuts(seeded: Database) -> None:
    """Bound models expose query, find, and all."""
    expect_equal([post.title for post in Post.all()], ["A", "B", "C"])
    expect_equal(Post.find(3).user_id, 2)
    expect_equal(len(User.query().where("id", 1).get()), 1)


def test_query_sees_writes_made_after_construction(database: Database) -> None:
    """Tables are read when the query executes."""
    query = database.query("users")
    database.insert("users", {"id": 5})

    expect_equal([user.id for user in query.get()], [5])


def test_query_on_explicit_state(database: Database) -> None:
    """An explicit state overrides the database's own state."""
    state = {"name": "entities", "users": {"data": {"9": {"id": 9, "name": "X"}}}}

    users = database.query("users", state).get()

    expect_equal([user.name for user in users], ["X"])
    expect_equal(database.query("users").get(), [])


def test_missing_table_reads_as_empty(database: Database) -> None:
    """A state without the entity's table yields no rows."""
    expect_equal(database.query("users", {"name": "entities"}).get(), [])


def test_malformed_table_raises(database: Database) -> None:
    """A table without a data mapping is a state error."""
    with pytest.raises(StateError):
        database.query("users", {"name": "entities", "users": []}).get()


def test_unknown_relation_in_with_raises(seeded: Database) -> None:
    """Eager-loading a name that is not a relation fails."""
    with pytest.raises(SchemaError) as excinfo:
        seeded.query("users").with_("friends").get()

    expect_problem(excinfo.value, "schema.undefined_relation")


def test_with_star_registers_every_relation(seeded: Database) -> None:
    """The wildcard loads each declared relation."""
    query = seeded.query("users").with_("*")

    expect_equal(sorted(query.load), ["image", "posts", "profile", "roles"])


def test_unknown_entity_query_raises(database: Database) -> None:
    """Queries on unregistered entities fail."""
    with pytest.raises(SchemaError):
        database.query("videos")
