"""Key-value persistence: one JSON document per key.

Writers replace the whole document. There is no locking or versioning, so two
concurrent read-modify-write cycles on the same key keep only the last write.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .models import KeyValueORM
from .repository import session_scope

logger = logging.getLogger(__name__)


def get(key: str) -> Optional[Any]:
    """Return the decoded document stored under ``key`` or ``None``."""

    with session_scope() as session:
        row = session.get(KeyValueORM, key)
        if row is None:
            return None
        raw = row.value
    return json.loads(raw)


def set(key: str, value: Any) -> None:  # noqa: A001 - mirrors the store vocabulary
    """Store ``value`` under ``key``, replacing any previous document."""

    encoded = json.dumps(value, ensure_ascii=False)
    with session_scope() as session:
        session.merge(KeyValueORM(key=key, value=encoded))
    logger.debug("Stored key=%s bytes=%s", key, len(encoded))


def delete(key: str) -> bool:
    """Remove ``key``; return whether it existed."""

    with session_scope() as session:
        row = session.get(KeyValueORM, key)
        if row is None:
            return False
        session.delete(row)
        return True


def list_key(kind: str, username: str) -> str:
    """Key holding the ``kind`` list (``products`` or ``shopping``) of a user."""

    return f"{kind}_{username}"


__all__ = ["delete", "get", "list_key", "set"]
