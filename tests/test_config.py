from __future__ import annotations

from pathlib import Path

from holdconfig.config import DEFAULT_ENV_PATTERNS, Config, load_config


def test_config_defaults() -> None:
    """Test that Config has correct default values."""
    cfg = Config()
    assert cfg.catalog == ".hold-config.json"
    assert cfg.env_patterns == DEFAULT_ENV_PATTERNS
    assert cfg.exclude == []
    assert cfg.respect_gitignore is False
    assert cfg.default_env_file == ".env"
    assert cfg.encoding_errors == "replace"


def test_load_config_missing_file(tmp_path: Path) -> None:
    cfg = load_config(tmp_path)
    assert cfg == Config()


def test_load_config_custom_values(tmp_path: Path) -> None:
    (tmp_path / "holdconfig.toml").write_text(
        """[holdconfig]
catalog = "envs.json"
env_patterns = ["**/.env", "config/*.env"]
exclude = ["legacy/**"]
respect_gitignore = true
default_env_file = ".env.local"
encoding_errors = "STRICT"
""",
        encoding="utf-8",
    )

    cfg = load_config(tmp_path)
    assert cfg.catalog == "envs.json"
    assert cfg.env_patterns == ["**/.env", "config/*.env"]
    assert cfg.exclude == ["legacy/**"]
    assert cfg.respect_gitignore is True
    assert cfg.default_env_file == ".env.local"
    assert cfg.encoding_errors == "strict"


def test_load_config_invalid_values_fall_back(tmp_path: Path) -> None:
    (tmp_path / "holdconfig.toml").write_text(
        """[holdconfig]
catalog = "  "
env_patterns = []
encoding_errors = "ignore"
""",
        encoding="utf-8",
    )

    cfg = load_config(tmp_path)
    assert cfg.catalog == ".hold-config.json"
    assert cfg.env_patterns == DEFAULT_ENV_PATTERNS
    assert cfg.encoding_errors == "replace"


def test_pyproject_requires_tool_section(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        "[holdconfig]\ncatalog = 'ignored.json'\n"
        "[tool.holdconfig]\ndefault_env_file = '.env.dev'\n",
        encoding="utf-8",
    )

    cfg = load_config(tmp_path)
    assert cfg.catalog == ".hold-config.json"
    assert cfg.default_env_file == ".env.dev"


def test_dotfile_takes_precedence(tmp_path: Path) -> None:
    (tmp_path / "holdconfig.toml").write_text(
        "[holdconfig]\ncatalog = 'plain.json'\n", encoding="utf-8"
    )
    (tmp_path / ".holdconfig.toml").write_text(
        "[holdconfig]\ncatalog = 'dot.json'\n", encoding="utf-8"
    )

    assert load_config(tmp_path).catalog == "dot.json"
