from __future__ import annotations

import difflib
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from .envparse import existing_keys
from .lines import normalize_newlines
from .model import Group


@dataclass(frozen=True)
class PreviewRow:
    key: str
    value: str
    group: str
    category: str
    status: Literal["override", "new"]


def build_merge_preview(text: str, groups: Sequence[Group]) -> list[PreviewRow]:
    """List what merging ``groups`` into ``text`` would set.

    Keys already assigned somewhere in ``text`` are reported as overrides and
    listed first; the rest are new. Rows are sorted by key within each status.
    """
    present = existing_keys(text)
    rows: list[PreviewRow] = []
    for group in groups:
        for var in group.variables:
            key = var.key.strip()
            if not key:
                continue
            rows.append(
                PreviewRow(
                    key=key,
                    value=var.value,
                    group=group.name,
                    category=group.normalized_category,
                    status="override" if key in present else "new",
                )
            )
    rows.sort(key=lambda r: (r.status != "override", r.key))
    return rows


def format_preview_table(rows: Sequence[PreviewRow]) -> str:
    if not rows:
        return "Nothing to preview."
    headers = ("STATUS", "KEY", "VALUE", "GROUP", "CATEGORY")
    table = [headers] + [(r.status, r.key, r.value, r.group, r.category) for r in rows]
    widths = [max(len(row[col]) for row in table) for col in range(len(headers))]
    lines = []
    for row in table:
        lines.append(
            "  ".join(cell.ljust(widths[col]) for col, cell in enumerate(row)).rstrip()
        )
    return "\n".join(lines)


def unified_diff(old: str, new: str, path: str) -> str:
    diff = difflib.unified_diff(
        normalize_newlines(old).splitlines(keepends=True),
        normalize_newlines(new).splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    out: list[str] = []
    for line in diff:
        if line.endswith("\n"):
            out.append(line)
        else:
            out.append(line + "\n")
            out.append("\\ No newline at end of file\n")
    return "".join(out)
