from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import pathspec

from .config import DEFAULT_ENV_PATTERNS

DEFAULT_EXCLUDES = [
    "**/.git/**",
    "**/node_modules/**",
    "**/.venv/**",
    "**/venv/**",
    "**/__pycache__/**",
    "**/build/**",
    "**/dist/**",
]


@dataclass(frozen=True)
class Discovery:
    files: list[Path]
    root: Path


def _load_ignore_lines(root: Path, filename: str) -> list[str]:
    p = root / filename
    if not p.exists():
        return []
    return p.read_text(encoding="utf-8", errors="replace").splitlines()


def _load_combined_ignore(root: Path, *, respect_gitignore: bool) -> pathspec.PathSpec:
    # Order matters: patterns later in the list take precedence (e.g. negations).
    lines: list[str] = []
    if respect_gitignore:
        lines.extend(_load_ignore_lines(root, ".gitignore"))
    lines.extend(_load_ignore_lines(root, ".holdconfigignore"))
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def _anchor(pattern: str) -> str:
    # Bare names like ".env" only match at the project root.
    if "/" in pattern.rstrip("/"):
        return pattern
    return "/" + pattern


def scan_env_files(
    root: Path,
    patterns: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
    *,
    respect_gitignore: bool = False,
) -> Discovery:
    """Find env files under ``root`` matching gitignore-style ``patterns``.

    Patterns without a slash are anchored at ``root`` (``.env`` never matches
    ``sub/.env``); use ``**/.env`` to search subdirectories. A
    ``.holdconfigignore`` file in ``root`` is always respected.
    """
    root = root.resolve()
    ignore = _load_combined_ignore(root, respect_gitignore=respect_gitignore)
    inc = pathspec.PathSpec.from_lines(
        "gitwildmatch", [_anchor(p) for p in (patterns or DEFAULT_ENV_PATTERNS)]
    )
    exc = pathspec.PathSpec.from_lines(
        "gitwildmatch", DEFAULT_EXCLUDES + list(exclude or [])
    )

    out: list[Path] = []
    for p in root.rglob("*"):
        if not p.is_file():
            continue
        rel_s = p.relative_to(root).as_posix()
        if ignore.match_file(rel_s):
            continue
        if not inc.match_file(rel_s):
            continue
        if exc.match_file(rel_s):
            continue
        out.append(p)

    out.sort(key=lambda p: p.relative_to(root).as_posix())
    return Discovery(files=out, root=root)


def read_env_text(path: Path, *, encoding_errors: str = "replace") -> str:
    try:
        return path.read_text(encoding="utf-8", errors=encoding_errors)
    except UnicodeDecodeError as e:
        raise ValueError(
            f"Failed to decode UTF-8 for {path} (encoding_errors={encoding_errors})"
        ) from e
    except OSError as e:
        raise ValueError(f"Cannot read {path}: {e.strerror or e}") from e


def write_env_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8", newline="\n")
    except OSError as e:
        raise ValueError(f"Cannot write {path}: {e.strerror or e}") from e


def safe_env_path(root: Path, relpath: str) -> Path:
    """Resolve a catalogued env file path, refusing anything outside ``root``."""
    root_resolved = root.resolve()
    target = (root_resolved / relpath).resolve()
    try:
        target.relative_to(root_resolved)
    except ValueError as e:
        raise ValueError(f"Refusing path outside root: {relpath}") from e
    return target
