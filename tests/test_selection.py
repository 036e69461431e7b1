from __future__ import annotations

from holdconfig.model import Group
from holdconfig.selection import Selection


def test_select_replaces_previous_in_same_category() -> None:
    sel = Selection().select("db", "g1").select("cache", "c1").select("db", "g2")

    assert sel.selected_ids() == {"g2", "c1"}
    assert not sel.is_selected("g1")
    assert sel.is_selected("c1")
    assert sel.by_category == {"db": "g2", "cache": "c1"}


def test_operations_return_new_values() -> None:
    base = Selection().select("db", "g1")
    changed = base.select("db", "g2")

    assert base.selected_ids() == {"g1"}
    assert changed.selected_ids() == {"g2"}


def test_deselect_and_clear() -> None:
    sel = Selection().select("db", "g1").select("cache", "c1")

    assert sel.deselect("db").selected_ids() == {"c1"}
    assert sel.deselect("missing").selected_ids() == {"g1", "c1"}
    assert not sel.clear()
    assert len(sel.clear()) == 0


def test_select_group_uses_default_category() -> None:
    group = Group(id="g", name="G", category="  ")
    sel = Selection().select_group(group)
    assert sel.by_category == {"Uncategorized": "g"}


def test_resolve_keeps_catalog_order() -> None:
    a = Group(id="a", name="A", category="x")
    b = Group(id="b", name="B", category="y")
    c = Group(id="c", name="C", category="z")
    sel = Selection().select("z", "c").select("x", "a")

    assert sel.resolve([a, b, c]) == [a, c]
