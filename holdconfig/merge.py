from __future__ import annotations

from collections.abc import Sequence

from .lines import (
    Assignment,
    CategoryHeader,
    classify_line,
    format_assignment,
    format_category_header,
    split_lines,
)
from .model import Group


def build_overrides(groups: Sequence[Group]) -> dict[str, str]:
    """Flatten the selected groups into one key -> value table.

    Groups are applied in order and variables in declaration order, so the
    last definition of a key wins.
    """
    overrides: dict[str, str] = {}
    for group in groups:
        for var in group.variables:
            key = var.key.strip()
            if key:
                overrides[key] = var.value
    return overrides


def _category_block(category: str, groups: Sequence[Group]) -> list[str]:
    members = [g for g in groups if g.normalized_category == category]
    out = [format_category_header(category, members[0].name)]
    for group in members:
        for var in group.variables:
            key = var.key.strip()
            if key:
                out.append(format_assignment(key, var.value))
    return out


def merge_lines(current_lines: Sequence[str], groups: Sequence[Group]) -> list[str]:
    """Merge the selected ``groups`` into the lines of an env file.

    - a header for a selected category starts a block that is replaced by the
      canonical header and the variables of every selected group in that
      category; the old block runs until the next blank line or header
    - assignments elsewhere whose key a selected group defines get the
      selected value
    - categories without a block in the file are appended at the end
    - everything else is copied through unchanged

    ``groups`` must be non-empty; callers reject empty selections.
    """
    overrides = build_overrides(groups)
    categories = list(dict.fromkeys(g.normalized_category for g in groups))

    out: list[str] = []
    processed: set[str] = set()
    i = 0
    n = len(current_lines)
    while i < n:
        line = current_lines[i]
        kind = classify_line(line, categories)

        if (
            isinstance(kind, CategoryHeader)
            and kind.category in categories
            and kind.category not in processed
        ):
            processed.add(kind.category)
            out.extend(_category_block(kind.category, groups))
            i += 1
            while i < n:
                nxt = classify_line(current_lines[i], categories)
                if not current_lines[i].strip() or isinstance(nxt, CategoryHeader):
                    break
                i += 1
            continue

        if isinstance(kind, Assignment) and kind.key in overrides:
            out.append(format_assignment(kind.key, overrides[kind.key]))
        else:
            out.append(line)
        i += 1

    pending = [c for c in categories if c not in processed]
    if pending:
        while out and not out[-1].strip():
            out.pop()
        for category in pending:
            if out:
                out.append("")
            out.extend(_category_block(category, groups))
    return out


def render_lines(lines: Sequence[str]) -> str:
    return "\n".join(lines).rstrip() + "\n"


def merge_env_text(text: str, groups: Sequence[Group]) -> str:
    return render_lines(merge_lines(split_lines(text), groups))
