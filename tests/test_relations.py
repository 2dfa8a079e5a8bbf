from __future__ import annotations

from pyamygdala.schema import SchemaRegistry
from pyamygdala.state.relations import reduce_related
from pyamygdala.state.store import EntityStore


def test_one_to_many_objects_become_ids_and_populate_related_table(store: EntityStore) -> None:
    store.set(
        "teams",
        {
            "id": "t9",
            "name": "Test Sandbox",
            "members": [
                {"id": "m1", "role": "admin"},
                {"id": "m2", "role": "member"},
                {"id": "m3", "role": "member"},
            ],
        },
    )

    assert store.find("teams", "t9")["members"] == ["m1", "m2", "m3"]
    assert len(store.table("members")) == 3
    assert store.find("members", "m2") == {"id": "m2", "role": "member"}


def test_foreign_key_object_becomes_id() -> None:
    registry = SchemaRegistry(
        {
            "discussions": {"url": "/d/", "foreignKey": {"message": "messages"}},
            "messages": {"url": "/m/"},
        }
    )
    store = EntityStore(registry)

    store.set("discussions", {"id": "d1", "message": {"id": "m1", "text": "hi"}})

    assert store.find("discussions", "d1")["message"] == "m1"
    assert store.find("messages", "m1")["text"] == "hi"


def test_nested_relations_resolve_recursively(store: EntityStore) -> None:
    store.set(
        "teams",
        {"id": "t1", "members": [{"id": "m1", "user": {"id": "u1", "name": "ana"}}]},
    )

    assert store.find("members", "m1") == {"id": "m1", "user": "u1"}
    assert store.find("users", "u1") == {"id": "u1", "name": "ana"}


def test_scalar_and_empty_relations_are_left_untouched(store: EntityStore) -> None:
    store.set(
        "teams",
        [
            {"id": "t1", "members": ["m1", "m2"]},
            {"id": "t2", "members": []},
            {"id": "t3"},
        ],
    )
    store.set("members", {"id": "m1", "user": "u7"})

    assert store.find("teams", "t1")["members"] == ["m1", "m2"]
    assert store.find("teams", "t2")["members"] == []
    assert "members" not in store.find("teams", "t3")
    assert store.find("members", "m1")["user"] == "u7"
    assert len(store.table("users")) == 0


def test_mixed_list_keeps_scalar_ids_and_flattens_objects(store: EntityStore) -> None:
    store.set("teams", {"id": "t1", "members": ["m0", {"id": "m1"}]})

    assert store.find("teams", "t1")["members"] == ["m0", "m1"]
    assert list(store.table("members")) == ["m1"]


def test_related_ids_use_the_related_types_id_attribute() -> None:
    registry = SchemaRegistry(
        {
            "teams": {"url": "/t/", "oneToMany": {"members": "users"}},
            "users": {"url": "/u/", "idAttribute": "username"},
        }
    )
    store = EntityStore(registry)

    store.set("teams", {"id": 1, "members": [{"username": "ana"}, {"username": "bo"}]})

    assert store.find("teams", 1)["members"] == ["ana", "bo"]


def test_cyclic_schema_terminates_through_idempotent_upserts() -> None:
    # No visited set: the cycle ends because each relation is rewritten to ids
    # before recursing, so revisiting a record is a plain re-upsert.
    registry = SchemaRegistry(
        {
            "posts": {"url": "/p/", "oneToMany": {"comments": "comments"}},
            "comments": {"url": "/c/", "foreignKey": {"post": "posts"}},
        }
    )
    store = EntityStore(registry)
    post = {"id": "p1", "title": "hello", "comments": []}
    comment = {"id": "c1", "post": post}
    post["comments"].append(comment)

    store.set("posts", post)

    assert store.find("posts", "p1") == {"id": "p1", "title": "hello", "comments": ["c1"]}
    assert store.find("comments", "c1") == {"id": "c1", "post": "p1"}


def test_embedded_copy_of_parent_does_not_replace_outer_record() -> None:
    registry = SchemaRegistry(
        {
            "posts": {"url": "/p/", "oneToMany": {"comments": "comments"}},
            "comments": {"url": "/c/", "foreignKey": {"post": "posts"}},
        }
    )
    store = EntityStore(registry)

    store.set(
        "posts",
        {"id": "p1", "title": "full", "comments": [{"id": "c1", "post": {"id": "p1", "title": "stub"}}]},
    )

    assert store.find("posts", "p1") == {"id": "p1", "title": "full", "comments": ["c1"]}


def test_reduce_related_maps_relations_to_ids(registry: SchemaRegistry) -> None:
    message = {
        "id": "m1",
        "text": "hi",
        "attachments": [{"id": "a1", "name": "x.png"}, "a2"],
        "user": {"id": "u1", "name": "ana"},
        "discussion": [{"id": "d1"}, {"id": "d2"}],
    }

    reduced = reduce_related(registry, "messages", message)

    assert reduced == {
        "id": "m1",
        "text": "hi",
        "attachments": ["a1", "a2"],
        "user": "u1",
        "discussion": "d1",
    }
    assert message["user"] == {"id": "u1", "name": "ana"}


def test_reduce_related_passes_scalars_through(registry: SchemaRegistry) -> None:
    reduced = reduce_related(registry, "messages", {"attachments": ["a1"], "user": "u1"})

    assert reduced == {"attachments": ["a1"], "user": "u1"}
