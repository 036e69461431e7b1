from __future__ import annotations

from .envparse import parse_assignments
from .merge import merge_env_text, merge_lines
from .model import DEFAULT_CATEGORY, Group, Variable
from .selection import Selection

__all__ = [
    "DEFAULT_CATEGORY",
    "Group",
    "Selection",
    "Variable",
    "merge_env_text",
    "merge_lines",
    "parse_assignments",
]
