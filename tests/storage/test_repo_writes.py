"""Repo create/insert semantics against an explicit store state."""

from __future__ import annotations

import pytest

from normstore.core.errors import StateError
from normstore.database import Database
from normstore.storage.repo import Repo
from tests._helpers.expect import expect_equal, expect_in, expect_problem, expect_true


def test_create_single_record_with_nested_has_many(database: Database) -> None:
    """Nested comments land in their own table and the post keeps their keys."""
    state = {"name": "entities", "posts": {"data": {}}, "comments": {"data": {}}}
    data = {"id": 1, "comments": [{"id": 1, "post_id": 1}, {"id": 2, "post_id": 1}]}

    Repo(database).create(state, "posts", data)

    expect_equal(
        state,
        {
            "name": "entities",
            "posts": {"data": {"1": {"id": 1, "comments": [1, 2]}}},
            "comments": {"data": {"1": {"id": 1, "post_id": 1}, "2": {"id": 2, "post_id": 1}}},
        },
    )


def test_create_list_replaces_touched_tables_only(database: Database) -> None:
    """Tables present in the payload are replaced; untouched tables stay as they were."""
    state = {
        "name": "entities",
        "users": {"data": {"5": {"id": 5}}},
        "posts": {"data": {}},
        "comments": {"data": {}},
        "reviews": {"data": {}},
    }
    posts = [
        {
            "id": 1,
            "author": {"id": 10},
            "comments": [{"id": 1, "post_id": 1, "body": "C1"}],
            "reviews": [1, 2],
        },
        {
            "id": 2,
            "author": {"id": 11},
            "comments": [
                {"id": 2, "post_id": 2, "body": "C2"},
                {"id": 3, "post_id": 2, "body": "C3"},
            ],
            "reviews": [3, 4],
        },
    ]

    Repo(database).create(state, "posts", posts)

    expect_equal(
        state,
        {
            "name": "entities",
            "users": {"data": {"10": {"id": 10}, "11": {"id": 11}}},
            "posts": {
                "data": {
                    "1": {"id": 1, "user_id": 10, "author": 10, "comments": [1], "reviews": [1, 2]},
                    "2": {
                        "id": 2,
                        "user_id": 11,
                        "author": 11,
                        "comments": [2, 3],
                        "reviews": [3, 4],
                    },
                }
            },
            "comments": {
                "data": {
                    "1": {"id": 1, "post_id": 1, "body": "C1"},
                    "2": {"id": 2, "post_id": 2, "body": "C2"},
                    "3": {"id": 3, "post_id": 2, "body": "C3"},
                }
            },
            "reviews": {"data": {}},
        },
    )


def test_create_with_empty_payload_empties_root_table(database: Database) -> None:
    """An empty list still replaces the root entity's table."""
    state = {"name": "entities", "users": {"data": {"10": {"id": 10}, "11": {"id": 11}}}}

    Repo(database).create(state, "users", [])

    expect_equal(state, {"name": "entities", "users": {"data": {}}})


def test_create_indexes_by_custom_primary_key(database: Database) -> None:
    """Records are keyed by the model's declared primary key field."""
    state = {"name": "entities", "customKeys": {"data": {}}}

    Repo(database).create(state, "customKeys", [{"id": 1, "my_id": 10}, {"id": 2, "my_id": 20}])

    expect_equal(
        state["customKeys"],
        {"data": {"10": {"id": 1, "my_id": 10}, "20": {"id": 2, "my_id": 20}}},
    )


def test_create_adds_missing_tables(database: Database) -> None:
    """A table absent from the state is created when the payload reaches it."""
    state: dict[str, object] = {"name": "entities"}

    Repo(database).create(state, "posts", {"id": 1, "comments": [{"id": 7}]})

    expect_in("comments", state)
    expect_equal(state["comments"], {"data": {"7": {"id": 7, "post_id": 1}}})


def test_create_twice_is_idempotent(database: Database) -> None:
    """Writing the same payload twice yields the same state."""
    state = database.initial_state()
    payload = [{"id": 1, "author": {"id": 3, "name": "Ann"}}]
    repo = Repo(database)

    repo.create(state, "posts", payload)
    first = {name: dict(table) for name, table in state.items() if name != "name"}
    repo.create(state, "posts", payload)
    second = {name: dict(table) for name, table in state.items() if name != "name"}

    expect_equal(second, first)


def test_insert_single_record_adds_key(database: Database) -> None:
    """Insert keeps existing records and adds the new one."""
    state = {
        "name": "entities",
        "users": {"data": {"1": {"id": 1, "name": "John"}, "2": {"id": 2, "name": "Jane"}}},
    }

    Repo(database).insert(state, "users", {"id": 3, "name": "Johnny"})

    expect_equal(
        state["users"]["data"],
        {
            "1": {"id": 1, "name": "John"},
            "2": {"id": 2, "name": "Jane"},
            "3": {"id": 3, "name": "Johnny"},
        },
    )


def test_insert_list_overwrites_matching_keys(database: Database) -> None:
    """A record with an existing key replaces the stored record wholesale."""
    state = {
        "name": "entities",
        "users": {"data": {"1": {"id": 1, "name": "John"}, "2": {"id": 2, "name": "Jane"}}},
    }

    Repo(database).insert(state, "users", [{"id": 1, "name": "Janie"}, {"id": 3, "name": "Johnny"}])

    expect_equal(
        state["users"]["data"],
        {
            "1": {"id": 1, "name": "Janie"},
            "2": {"id": 2, "name": "Jane"},
            "3": {"id": 3, "name": "Johnny"},
        },
    )


def test_insert_with_empty_payload_is_noop(database: Database) -> None:
    """Inserting nothing leaves every table untouched."""
    state = {"name": "entities", "users": {"data": {"10": {"id": 10}, "11": {"id": 11}}}}

    Repo(database).insert(state, "users", [])

    expected = {"name": "entities", "users": {"data": {"10": {"id": 10}, "11": {"id": 11}}}}
    expect_equal(state, expected)


def test_insert_merges_nested_tables(database: Database) -> None:
    """Nested records merge into their tables alongside the root records."""
    state = database.initial_state()
    state["comments"]["data"]["9"] = {"id": 9, "post_id": 4}

    Repo(database).insert(state, "posts", {"id": 5, "comments": [{"id": 10}]})

    expect_equal(sorted(state["comments"]["data"]), ["10", "9"])
    expect_equal(state["comments"]["data"]["10"]["post_id"], 5)


def test_database_writes_to_its_own_state(database: Database) -> None:
    """Database.create/insert operate on the database's default state."""
    database.create("users", [{"id": 1, "name": "John"}])
    database.insert("users", {"id": 2, "name": "Jane"})

    expect_equal(sorted(database.state["users"]["data"]), ["1", "2"])
    expect_equal(database.state["name"], "entities")


def test_malformed_table_raises_state_error(database: Database) -> None:
    """A table without a data mapping is rejected."""
    state = {"name": "entities", "users": {"data": ["not", "a", "mapping"]}}

    with pytest.raises(StateError) as excinfo:
        Repo(database).insert(state, "users", {"id": 1})

    expect_problem(excinfo.value, "state.malformed_table")
    expect_true(state["users"]["data"] == ["not", "a", "mapping"])


def test_create_without_pivot_rows_keeps_pivot_table(database: Database) -> None:
    """An owner with no related keys leaves other owners' pivot links in place."""
    database.create("users", {"id": 1, "roles": [{"id": 1, "name": "admin"}]})
    links = dict(database.state["role_user"]["data"])

    normalized = database.create("users", [{"id": 2, "roles": []}, {"id": 3, "roles": [None]}])

    expect_true("role_user" not in normalized, message="No pivot bucket without pivot rows")
    expect_equal(database.state["role_user"]["data"], links)
    expect_equal(links, {"1_1": {"$id": "1_1", "user_id": 1, "role_id": 1}})
