from __future__ import annotations

CATALOG_FORMAT_VERSION = "holdconfig.catalog.v1"
CATALOG_FILENAME = ".hold-config.json"

DEFAULT_GROUP_ID = "default"
DEFAULT_GROUP_NAME = "Default"

EMPTY_SELECTION_ERROR = (
    "No groups selected. Pick at least one group with --select before merging."
)
MISSING_CATALOG_ERROR = (
    "No catalog found. Run `holdconfig init` in the project root first."
)
TEMPLATE_VALIDATION_ERROR = (
    "Category template needs a name and at least one variable key."
)
