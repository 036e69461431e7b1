from __future__ import annotations

import hashlib
from collections.abc import Collection


def stable_entity_id(*parts: str) -> str:
    payload = "::".join(parts).encode()
    return hashlib.sha1(payload).hexdigest()[:8].upper()


def unique_entity_id(taken: Collection[str], *parts: str) -> str:
    """Return a stable id for ``parts`` that does not collide with ``taken``.

    Collisions (e.g. two groups with the same name and category) are resolved
    by appending a counter to the hashed payload.
    """
    candidate = stable_entity_id(*parts)
    idx = 2
    while candidate in taken:
        candidate = stable_entity_id(*parts, str(idx))
        idx += 1
    return candidate
