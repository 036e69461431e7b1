from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .formats import EMPTY_SELECTION_ERROR
from .merge import merge_env_text
from .model import Group
from .selection import Selection

ReadText = Callable[[Path], str]
WriteText = Callable[[Path, str], None]


@dataclass(frozen=True)
class MergeOutcome:
    path: Path
    groups: list[Group]
    old_text: str
    new_text: str
    changed: bool
    written: bool


def resolve_selected_groups(
    selection: Selection, catalog: Sequence[Group]
) -> list[Group]:
    if not selection:
        raise ValueError(EMPTY_SELECTION_ERROR)
    groups = selection.resolve(catalog)
    missing = selection.selected_ids() - {g.id for g in groups}
    if missing:
        raise ValueError(f"Unknown group id(s): {', '.join(sorted(missing))}")
    return groups


def save_merged_env_file(
    path: Path,
    selection: Selection,
    catalog: Sequence[Group],
    *,
    read_text: ReadText,
    write_text: WriteText,
    dry_run: bool = False,
) -> MergeOutcome:
    """Merge the selected groups into the env file at ``path``.

    The file is read through ``read_text`` on every call, right before the
    merge, so edits made since the catalog was built are not clobbered. Only
    one save per file may be in flight at a time.
    """
    groups = resolve_selected_groups(selection, catalog)
    old_text = read_text(path)
    new_text = merge_env_text(old_text, groups)
    changed = new_text != old_text
    written = False
    if changed and not dry_run:
        write_text(path, new_text)
        written = True
    return MergeOutcome(
        path=path,
        groups=groups,
        old_text=old_text,
        new_text=new_text,
        changed=changed,
        written=written,
    )
