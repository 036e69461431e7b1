from __future__ import annotations

import json
import warnings
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .envparse import parse_assignments
from .formats import (
    CATALOG_FILENAME,
    CATALOG_FORMAT_VERSION,
    DEFAULT_GROUP_ID,
    DEFAULT_GROUP_NAME,
    TEMPLATE_VALIDATION_ERROR,
)
from .ids import unique_entity_id
from .model import (
    DEFAULT_CATEGORY,
    CategoryTemplate,
    EnvFile,
    Group,
    Project,
    Variable,
    normalize_category,
)
from .scan import read_env_text


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


# --- (de)serialization -------------------------------------------------------


def _variable_to_dict(var: Variable) -> dict[str, Any]:
    entry: dict[str, Any] = {"key": var.key, "value": var.value}
    if var.description:
        entry["description"] = var.description
    return entry


def _group_to_dict(group: Group) -> dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "category": group.category,
        "description": group.description,
        "variables": [_variable_to_dict(v) for v in group.variables],
    }


def _template_to_dict(template: CategoryTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "keys": list(template.keys),
    }


def project_to_dict(project: Project) -> dict[str, Any]:
    return {
        "format": CATALOG_FORMAT_VERSION,
        "name": project.name,
        "path": project.path,
        "created_at": project.created_at,
        "last_modified": project.last_modified,
        "env_files": [
            {
                "name": f.name,
                "path": f.path,
                "groups": [_group_to_dict(g) for g in f.groups],
                "category_templates": [
                    _template_to_dict(t) for t in f.category_templates
                ],
            }
            for f in project.env_files
        ],
    }


def _skip(where: str, reason: str) -> None:
    warnings.warn(f"Skipping {where}: {reason}", RuntimeWarning, stacklevel=3)


def _parse_variables(raw: Any, where: str) -> tuple[Variable, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[Variable] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            _skip(f"{where} variable #{idx}", "not an object")
            continue
        key = str(item.get("key") or "").strip()
        if not key:
            _skip(f"{where} variable #{idx}", "empty key")
            continue
        out.append(
            Variable(
                key=key,
                value="" if item.get("value") is None else str(item["value"]),
                description=str(item.get("description") or ""),
            )
        )
    return tuple(out)


def _parse_groups(raw: Any, where: str) -> tuple[Group, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[Group] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            _skip(f"{where} group #{idx}", "not an object")
            continue
        group_id = str(item.get("id") or "").strip()
        if not group_id:
            _skip(f"{where} group #{idx}", "missing id")
            continue
        if group_id in seen:
            _skip(f"{where} group #{idx}", f"duplicate id {group_id}")
            continue
        seen.add(group_id)
        out.append(
            Group(
                id=group_id,
                name=str(item.get("name") or group_id),
                category=normalize_category(item.get("category")),
                variables=_parse_variables(
                    item.get("variables"), f"{where} group {group_id}"
                ),
                description=str(item.get("description") or ""),
            )
        )
    return tuple(out)


def _parse_templates(raw: Any, where: str) -> tuple[CategoryTemplate, ...]:
    if not isinstance(raw, list):
        return ()
    out: list[CategoryTemplate] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            _skip(f"{where} template #{idx}", "missing name")
            continue
        keys = item.get("keys")
        out.append(
            CategoryTemplate(
                id=str(item.get("id") or "").strip() or f"template-{idx + 1}",
                name=str(item["name"]).strip(),
                keys=tuple(str(k) for k in keys) if isinstance(keys, list) else (),
                description=str(item.get("description") or ""),
            )
        )
    return tuple(out)


def project_from_dict(data: Any) -> Project:
    if not isinstance(data, dict):
        raise ValueError("Catalog root must be a JSON object")
    fmt = data.get("format")
    if fmt != CATALOG_FORMAT_VERSION:
        raise ValueError(f"Unsupported catalog format: {fmt}")

    env_files: list[EnvFile] = []
    raw_files = data.get("env_files")
    for idx, item in enumerate(raw_files if isinstance(raw_files, list) else []):
        if not isinstance(item, dict) or not item.get("path"):
            _skip(f"env file #{idx}", "missing path")
            continue
        path = str(item["path"])
        name = str(item.get("name") or Path(path).name)
        env_files.append(
            EnvFile(
                name=name,
                path=path,
                groups=_parse_groups(item.get("groups"), name),
                category_templates=_parse_templates(
                    item.get("category_templates"), name
                ),
            )
        )

    return Project(
        name=str(data.get("name") or ""),
        path=str(data.get("path") or "."),
        env_files=tuple(env_files),
        created_at=str(data.get("created_at") or ""),
        last_modified=str(data.get("last_modified") or ""),
    )


# --- persistence --------------------------------------------------------------


def catalog_path(root: Path, filename: str = CATALOG_FILENAME) -> Path:
    return root / filename


def load_catalog(root: Path, filename: str = CATALOG_FILENAME) -> Project | None:
    p = catalog_path(root, filename)
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{p.name}: invalid JSON ({e.msg} at line {e.lineno})") from e
    return project_from_dict(data)


def save_catalog(
    root: Path,
    project: Project,
    filename: str = CATALOG_FILENAME,
    *,
    now: str | None = None,
) -> Project:
    """Write ``project`` to the catalog file and return it with a fresh timestamp."""
    stamped = replace(project, last_modified=now or _now())
    p = catalog_path(root, filename)
    text = json.dumps(project_to_dict(stamped), indent=2, ensure_ascii=False) + "\n"
    try:
        p.write_text(text, encoding="utf-8", newline="\n")
    except OSError as e:
        raise ValueError(f"Cannot write {p}: {e.strerror or e}") from e
    return stamped


# --- bootstrap ----------------------------------------------------------------


def default_group(text: str) -> Group:
    return Group(
        id=DEFAULT_GROUP_ID,
        name=DEFAULT_GROUP_NAME,
        category=DEFAULT_CATEGORY,
        variables=tuple(parse_assignments(text)),
    )


def bootstrap_env_file(
    root: Path, path: Path, *, encoding_errors: str = "replace"
) -> EnvFile:
    rel = path.resolve().relative_to(root.resolve()).as_posix()
    text = read_env_text(path, encoding_errors=encoding_errors)
    return EnvFile(name=rel, path=rel, groups=(default_group(text),))


def bootstrap_project(
    root: Path,
    env_paths: Sequence[Path],
    *,
    encoding_errors: str = "replace",
    now: str | None = None,
) -> Project:
    stamp = now or _now()
    root = root.resolve()
    return Project(
        name=root.name,
        path=".",
        env_files=tuple(
            bootstrap_env_file(root, p, encoding_errors=encoding_errors)
            for p in env_paths
        ),
        created_at=stamp,
        last_modified=stamp,
    )


def refresh_project(
    root: Path,
    project: Project,
    env_paths: Sequence[Path],
    *,
    encoding_errors: str = "replace",
) -> Project:
    """Add newly discovered env files; known files keep their groups."""
    known = {f.path for f in project.env_files}
    added = [
        bootstrap_env_file(root, p, encoding_errors=encoding_errors)
        for p in env_paths
        if p.resolve().relative_to(root.resolve()).as_posix() not in known
    ]
    if not added:
        return project
    return replace(project, env_files=project.env_files + tuple(added))


# --- groups and templates -----------------------------------------------------


def _replace_env_file(project: Project, env_file: EnvFile) -> Project:
    files = tuple(env_file if f.path == env_file.path else f for f in project.env_files)
    return replace(project, env_files=files)


def upsert_group(
    project: Project, env_file: EnvFile, group: Group
) -> tuple[Project, Group]:
    """Add ``group`` to ``env_file`` or replace the group with the same id.

    A group without an id gets a new one derived from its name and category.
    """
    if not group.id:
        taken = {g.id for g in env_file.groups}
        group = replace(
            group,
            id=unique_entity_id(
                taken, env_file.path, group.normalized_category, group.name
            ),
        )
    group = replace(group, category=group.normalized_category)
    if env_file.find_group(group.id) is None:
        groups = env_file.groups + (group,)
    else:
        groups = tuple(group if g.id == group.id else g for g in env_file.groups)
    return _replace_env_file(project, replace(env_file, groups=groups)), group


def remove_group(project: Project, env_file: EnvFile, group_id: str) -> Project:
    if env_file.find_group(group_id) is None:
        raise ValueError(f"Unknown group id: {group_id}")
    groups = tuple(g for g in env_file.groups if g.id != group_id)
    return _replace_env_file(project, replace(env_file, groups=groups))


def upsert_template(
    project: Project, env_file: EnvFile, template: CategoryTemplate
) -> tuple[Project, CategoryTemplate]:
    keys = tuple(k.strip() for k in template.keys if k.strip())
    if not template.name.strip() or not keys:
        raise ValueError(TEMPLATE_VALIDATION_ERROR)
    template = replace(template, name=template.name.strip(), keys=keys)
    existing = {t.id for t in env_file.category_templates}
    if not template.id:
        template = replace(
            template,
            id=unique_entity_id(existing, env_file.path, "template", template.name),
        )
    if template.id in existing:
        templates = tuple(
            template if t.id == template.id else t for t in env_file.category_templates
        )
    else:
        templates = env_file.category_templates + (template,)
    return (
        _replace_env_file(project, replace(env_file, category_templates=templates)),
        template,
    )


def remove_template(project: Project, env_file: EnvFile, template_id: str) -> Project:
    templates = tuple(t for t in env_file.category_templates if t.id != template_id)
    if len(templates) == len(env_file.category_templates):
        raise ValueError(f"Unknown template id: {template_id}")
    return _replace_env_file(project, replace(env_file, category_templates=templates))


def copy_template(
    project: Project, env_file: EnvFile, template_id: str
) -> tuple[Project, CategoryTemplate]:
    for t in env_file.category_templates:
        if t.id == template_id:
            copied = CategoryTemplate(
                id="",
                name=f"{t.name} - copy",
                keys=t.keys,
                description=t.description,
            )
            return upsert_template(project, env_file, copied)
    raise ValueError(f"Unknown template id: {template_id}")


def find_template(env_file: EnvFile, name_or_id: str) -> CategoryTemplate | None:
    for t in env_file.category_templates:
        if t.id == name_or_id or t.name == name_or_id:
            return t
    return None


def group_from_template(template: CategoryTemplate, name: str) -> Group:
    """New group in the template's category with one empty variable per key."""
    return Group(
        id="",
        name=name,
        category=template.name,
        variables=tuple(Variable(key=k, value="") for k in template.keys),
    )
