from __future__ import annotations

from .lines import Assignment, classify_line, split_lines
from .model import Variable


def parse_assignments(text: str) -> list[Variable]:
    """Return the ``KEY=VALUE`` assignments of ``text`` in file order.

    Blank lines, comments and malformed lines are ignored. Only the first ``=``
    separates key from value, so ``URL=a=b`` yields the value ``a=b``.
    """
    out: list[Variable] = []
    for line in split_lines(text):
        kind = classify_line(line)
        if isinstance(kind, Assignment) and kind.key:
            out.append(Variable(key=kind.key, value=kind.value))
    return out


def existing_keys(text: str) -> set[str]:
    return {v.key for v in parse_assignments(text)}
