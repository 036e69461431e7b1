from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

_CANONICAL_HEADER_RE = re.compile(r"^(?P<category>[^:=]+?)\s*:\s*(?P<label>.*)$")


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class CategoryHeader:
    category: str
    label: str = ""


@dataclass(frozen=True)
class Assignment:
    key: str
    value: str


@dataclass(frozen=True)
class Other:
    pass


LineKind = Union[Blank, CategoryHeader, Assignment, Other]


def normalize_newlines(s: str) -> str:
    return s.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    return normalize_newlines(text).split("\n")


def format_category_header(category: str, label: str = "") -> str:
    if label:
        return f"# {category}: {label}"
    return f"# {category}"


def format_assignment(key: str, value: str) -> str:
    return f"{key}={value}"


def _match_known_category(
    body: str, categories: Iterable[str]
) -> CategoryHeader | None:
    # Longest names first so "db-replica" wins over "db".
    for category in sorted(set(categories), key=len, reverse=True):
        if not category or not body.startswith(category):
            continue
        rest = body[len(category) :]
        if not rest:
            return CategoryHeader(category)
        if rest[0] == ":":
            return CategoryHeader(category, rest[1:].strip())
        if rest[0].isspace():
            rest = rest.strip()
            if rest.startswith(":"):
                rest = rest[1:].strip()
            return CategoryHeader(category, rest)
    return None


def classify_line(line: str, categories: Iterable[str] = ()) -> LineKind:
    """Classify one line of an env-style file.

    ``categories`` are category names already known to the caller; a comment
    whose body equals one of them (or starts with it followed by ``:`` or
    whitespace) is a header even without the ``<category>: <label>`` shape.
    Total over all strings: malformed input becomes ``Other``.
    """
    stripped = line.strip()
    if not stripped:
        return Blank()

    if stripped.startswith("#"):
        body = stripped.lstrip("#").strip()
        if not body:
            return Other()
        known = _match_known_category(body, categories)
        if known is not None:
            return known
        m = _CANONICAL_HEADER_RE.match(body)
        if m and m.group("category").strip():
            return CategoryHeader(m.group("category").strip(), m.group("label").strip())
        return Other()

    if "=" not in stripped:
        return Other()
    key, _, value = stripped.partition("=")
    key = key.strip()
    if not key:
        return Other()
    return Assignment(key, value.strip())
