from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .model import Group, normalize_category


@dataclass(frozen=True)
class Selection:
    """Per-category choice of which group gets merged.

    At most one group id is held per category; selecting again in the same
    category replaces the previous choice. Every operation returns a new
    ``Selection`` so one coordinator can own the current value.
    """

    by_category: Mapping[str, str] = field(default_factory=dict)

    def select(self, category: str, group_id: str) -> Selection:
        updated = dict(self.by_category)
        updated[normalize_category(category)] = group_id
        return Selection(updated)

    def select_group(self, group: Group) -> Selection:
        return self.select(group.normalized_category, group.id)

    def deselect(self, category: str) -> Selection:
        updated = dict(self.by_category)
        updated.pop(normalize_category(category), None)
        return Selection(updated)

    def clear(self) -> Selection:
        return Selection()

    def is_selected(self, group_id: str) -> bool:
        return group_id in self.by_category.values()

    def selected_ids(self) -> set[str]:
        return set(self.by_category.values())

    def resolve(self, groups: Iterable[Group]) -> list[Group]:
        """Selected groups in catalog order (the order merge tie-breaks use)."""
        ids = self.selected_ids()
        return [g for g in groups if g.id in ids]

    def __bool__(self) -> bool:
        return bool(self.by_category)

    def __len__(self) -> int:
        return len(self.by_category)
