from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from .formats import CATALOG_FILENAME

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # pyright: ignore[reportMissingImports]

CONFIG_FILENAMES: tuple[str, ...] = (".holdconfig.toml", "holdconfig.toml")
PYPROJECT_FILENAME = "pyproject.toml"

DEFAULT_ENV_PATTERNS: list[str] = [
    ".env",
    ".env.*",
]


@dataclass
class Config:
    # Catalog file, relative to the project root.
    catalog: str = CATALOG_FILENAME
    env_patterns: list[str] = field(default_factory=lambda: DEFAULT_ENV_PATTERNS.copy())
    exclude: list[str] = field(default_factory=list)
    # Env files are usually gitignored, so ignore rules are opt-in.
    respect_gitignore: bool = False
    # Env file targeted by commands when --env-file is omitted.
    default_env_file: str = ".env"
    # - "replace": preserve operation by replacing invalid bytes (default)
    # - "strict": fail on invalid UTF-8 bytes
    encoding_errors: Literal["replace", "strict"] = "replace"


def find_config_path(root: Path) -> Path | None:
    root = root.resolve()
    for name in CONFIG_FILENAMES:
        p = root / name
        if p.exists():
            return p
    pyproject = root / PYPROJECT_FILENAME
    if pyproject.exists():
        return pyproject
    return None


def extract_section(data: Any, *, from_pyproject: bool) -> dict[str, Any]:
    section: dict[str, Any] = {}
    if not isinstance(data, dict):
        return section

    if not from_pyproject:
        # Preferred for dedicated config files: [holdconfig]
        hc = data.get("holdconfig")
        if isinstance(hc, dict):
            return hc

    # Supported in all files; required for pyproject.toml.
    tool = data.get("tool")
    if isinstance(tool, dict):
        hc2 = tool.get("holdconfig")
        if isinstance(hc2, dict):
            return hc2

    return section


def load_config(root: Path) -> Config:
    cfg_path = find_config_path(root)
    if cfg_path is None:
        return Config()

    data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    section = extract_section(data, from_pyproject=cfg_path.name == PYPROJECT_FILENAME)
    cfg = Config()

    catalog = section.get("catalog", cfg.catalog)
    if isinstance(catalog, str) and catalog.strip():
        cfg.catalog = catalog.strip()

    patterns = section.get("env_patterns")
    if isinstance(patterns, list) and patterns:
        cfg.env_patterns = [str(p) for p in patterns]

    exc = section.get("exclude", cfg.exclude)
    if isinstance(exc, list):
        cfg.exclude = [str(x) for x in exc]

    cfg.respect_gitignore = bool(
        section.get("respect_gitignore", cfg.respect_gitignore)
    )

    default_env = section.get("default_env_file", cfg.default_env_file)
    if isinstance(default_env, str) and default_env.strip():
        cfg.default_env_file = default_env.strip()

    encoding_errors = section.get("encoding_errors", cfg.encoding_errors)
    if isinstance(encoding_errors, str):
        encoding_errors = encoding_errors.strip().lower()
        if encoding_errors in {"replace", "strict"}:
            cfg.encoding_errors = encoding_errors  # type: ignore[assignment]

    return cfg
