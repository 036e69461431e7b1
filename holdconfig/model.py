from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

DEFAULT_CATEGORY = "Uncategorized"


def normalize_category(category: str | None) -> str:
    cat = (category or "").strip()
    return cat or DEFAULT_CATEGORY


@dataclass(frozen=True)
class Variable:
    """One ``KEY=VALUE`` setting inside a group."""

    key: str
    value: str
    description: str = ""


@dataclass(frozen=True)
class Group:
    """A named bundle of variables, bucketed under one category."""

    id: str
    name: str
    category: str = DEFAULT_CATEGORY
    variables: tuple[Variable, ...] = ()
    description: str = ""

    @property
    def normalized_category(self) -> str:
        return normalize_category(self.category)

    def as_mapping(self) -> dict[str, str]:
        # Later duplicates win.
        out: dict[str, str] = {}
        for var in self.variables:
            key = var.key.strip()
            if key:
                out[key] = var.value
        return out


@dataclass(frozen=True)
class CategoryTemplate:
    """Reusable list of keys used to seed new groups of one category."""

    id: str
    name: str
    keys: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class EnvFile:
    name: str
    path: str  # relative to the project root, posix style
    groups: tuple[Group, ...] = ()
    category_templates: tuple[CategoryTemplate, ...] = ()

    def find_group(self, group_id: str) -> Group | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None


@dataclass(frozen=True)
class Project:
    name: str
    path: str
    env_files: tuple[EnvFile, ...] = ()
    created_at: str = ""
    last_modified: str = ""

    def find_env_file(self, name: str) -> EnvFile | None:
        for env_file in self.env_files:
            if env_file.name == name or env_file.path == name:
                return env_file
        return None


def groups_by_category(groups: Iterable[Group]) -> dict[str, list[Group]]:
    out: dict[str, list[Group]] = {}
    for group in groups:
        out.setdefault(group.normalized_category, []).append(group)
    return out
