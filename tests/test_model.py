from __future__ import annotations

import dataclasses

import pytest

from holdconfig.model import (
    DEFAULT_CATEGORY,
    EnvFile,
    Group,
    Project,
    Variable,
    groups_by_category,
    normalize_category,
)


def test_group_is_frozen() -> None:
    group = Group(id="g", name="G")
    with pytest.raises(dataclasses.FrozenInstanceError):
        group.name = "other"  # type: ignore[misc]


def test_group_defaults() -> None:
    group = Group(id="g", name="G")
    assert group.category == DEFAULT_CATEGORY
    assert group.variables == ()
    assert group.description == ""


def test_normalize_category() -> None:
    assert normalize_category(None) == "Uncategorized"
    assert normalize_category("   ") == "Uncategorized"
    assert normalize_category(" db ") == "db"


def test_group_mapping_last_duplicate_wins() -> None:
    group = Group(
        id="g",
        name="G",
        variables=(Variable("A", "1"), Variable(" ", "x"), Variable("A", "2")),
    )
    assert group.as_mapping() == {"A": "2"}


def test_groups_by_category_keeps_first_seen_order() -> None:
    a = Group(id="a", name="A", category="db")
    b = Group(id="b", name="B", category="")
    c = Group(id="c", name="C", category="db")

    grouped = groups_by_category([a, b, c])

    assert list(grouped) == ["db", "Uncategorized"]
    assert grouped["db"] == [a, c]


def test_lookups() -> None:
    group = Group(id="g", name="G")
    env_file = EnvFile(name=".env", path="app/.env", groups=(group,))
    project = Project(name="p", path=".", env_files=(env_file,))

    assert env_file.find_group("g") is group
    assert env_file.find_group("missing") is None
    assert project.find_env_file(".env") is env_file
    assert project.find_env_file("app/.env") is env_file
    assert project.find_env_file("other") is None
