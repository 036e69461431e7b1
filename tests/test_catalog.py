from __future__ import annotations

import json
from pathlib import Path

import pytest

from holdconfig.catalog import (
    bootstrap_project,
    copy_template,
    group_from_template,
    load_catalog,
    project_from_dict,
    project_to_dict,
    refresh_project,
    remove_group,
    remove_template,
    save_catalog,
    upsert_group,
    upsert_template,
)
from holdconfig.formats import CATALOG_FILENAME, CATALOG_FORMAT_VERSION
from holdconfig.model import CategoryTemplate, Group, Variable


def _project(tmp_path: Path):
    env = tmp_path / ".env"
    env.write_text("# header\nA=1\n  =bad\nB = two\n", encoding="utf-8")
    return bootstrap_project(tmp_path, [env], now="2024-01-01T00:00:00+00:00")


def test_bootstrap_seeds_default_group(tmp_path: Path) -> None:
    project = _project(tmp_path)

    assert project.name == tmp_path.name
    assert project.created_at == "2024-01-01T00:00:00+00:00"
    (env_file,) = project.env_files
    assert env_file.path == ".env"
    (group,) = env_file.groups
    assert group.id == "default"
    assert group.category == "Uncategorized"
    assert group.variables == (Variable("A", "1"), Variable("B", "two"))


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    project = _project(tmp_path)
    saved = save_catalog(tmp_path, project, now="2024-02-02T00:00:00+00:00")

    data = json.loads((tmp_path / CATALOG_FILENAME).read_text(encoding="utf-8"))
    assert data["format"] == CATALOG_FORMAT_VERSION
    assert data["last_modified"] == "2024-02-02T00:00:00+00:00"

    loaded = load_catalog(tmp_path)
    assert loaded == saved


def test_load_missing_catalog_returns_none(tmp_path: Path) -> None:
    assert load_catalog(tmp_path) is None


def test_load_rejects_bad_json_and_format(tmp_path: Path) -> None:
    (tmp_path / CATALOG_FILENAME).write_text("{nope", encoding="utf-8")
    with pytest.raises(ValueError, match="invalid JSON"):
        load_catalog(tmp_path)

    with pytest.raises(ValueError, match="Unsupported catalog format"):
        project_from_dict({"format": "other"})


def test_malformed_entries_are_skipped_with_warning() -> None:
    data = {
        "format": CATALOG_FORMAT_VERSION,
        "env_files": [
            {"path": ".env", "groups": [
                {"id": "g", "name": "G", "variables": [{"key": "", "value": "x"}, {"key": "K", "value": 5}]},
                {"name": "no id"},
                "junk",
            ]},
            {"name": "no path"},
        ],
    }

    with pytest.warns(RuntimeWarning, match="Skipping"):
        project = project_from_dict(data)

    (env_file,) = project.env_files
    (group,) = env_file.groups
    assert group.variables == (Variable("K", "5"),)
    assert group.category == "Uncategorized"


def test_refresh_adds_new_files_and_keeps_groups(tmp_path: Path) -> None:
    project = _project(tmp_path)
    env_file = project.env_files[0]
    project, _ = upsert_group(project, env_file, Group(id="", name="extra", category="db"))
    local = tmp_path / ".env.local"
    local.write_text("L=1\n", encoding="utf-8")

    refreshed = refresh_project(tmp_path, project, [tmp_path / ".env", local])

    assert [f.path for f in refreshed.env_files] == [".env", ".env.local"]
    assert len(refreshed.env_files[0].groups) == 2
    assert refreshed.env_files[1].groups[0].variables == (Variable("L", "1"),)
    assert refresh_project(tmp_path, refreshed, [local]) is refreshed


def test_upsert_group_assigns_id_and_replaces(tmp_path: Path) -> None:
    project = _project(tmp_path)
    env_file = project.env_files[0]

    project, added = upsert_group(project, env_file, Group(id="", name="local", category=" db "))
    assert added.id
    assert added.category == "db"

    env_file = project.env_files[0]
    project, updated = upsert_group(
        project, env_file, Group(id=added.id, name="renamed", category="db")
    )
    groups = project.env_files[0].groups
    assert [g.name for g in groups] == ["Default", "renamed"]
    assert updated.id == added.id


def test_same_name_groups_get_distinct_ids(tmp_path: Path) -> None:
    project = _project(tmp_path)
    project, first = upsert_group(project, project.env_files[0], Group(id="", name="x", category="c"))
    project, second = upsert_group(project, project.env_files[0], Group(id="", name="x", category="c"))
    assert first.id != second.id


def test_remove_group(tmp_path: Path) -> None:
    project = _project(tmp_path)
    project = remove_group(project, project.env_files[0], "default")
    assert project.env_files[0].groups == ()

    with pytest.raises(ValueError, match="Unknown group id"):
        remove_group(project, project.env_files[0], "default")


def test_template_lifecycle(tmp_path: Path) -> None:
    project = _project(tmp_path)
    env_file = project.env_files[0]

    project, tpl = upsert_template(
        project, env_file, CategoryTemplate(id="", name=" db ", keys=("HOST", " ", "PORT"))
    )
    assert tpl.name == "db"
    assert tpl.keys == ("HOST", "PORT")

    project, copied = copy_template(project, project.env_files[0], tpl.id)
    assert copied.name == "db - copy"
    assert copied.id != tpl.id
    assert copied.keys == tpl.keys

    project = remove_template(project, project.env_files[0], tpl.id)
    assert [t.name for t in project.env_files[0].category_templates] == ["db - copy"]

    with pytest.raises(ValueError, match="Unknown template id"):
        copy_template(project, project.env_files[0], tpl.id)


@pytest.mark.parametrize(
    "template",
    [
        CategoryTemplate(id="", name="  ", keys=("A",)),
        CategoryTemplate(id="", name="db", keys=()),
        CategoryTemplate(id="", name="db", keys=(" ",)),
    ],
)
def test_template_validation(tmp_path: Path, template: CategoryTemplate) -> None:
    project = _project(tmp_path)
    with pytest.raises(ValueError, match="needs a name"):
        upsert_template(project, project.env_files[0], template)


def test_group_from_template() -> None:
    tpl = CategoryTemplate(id="t", name="db", keys=("HOST", "PORT"))
    group = group_from_template(tpl, "staging")

    assert group.category == "db"
    assert group.name == "staging"
    assert group.variables == (Variable("HOST", ""), Variable("PORT", ""))


def test_project_to_dict_is_json_serializable(tmp_path: Path) -> None:
    project = _project(tmp_path)
    json.dumps(project_to_dict(project))
