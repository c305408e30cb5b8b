"""Onboard store: SQL schema, engine helpers and the ``UserStore``.

The ``users`` table is the only shared resource between runs.  Every
write a run issues is an idempotent field-level update.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from onboard.store.user_store import UserStore


def build_user_store(db_path: str | Path | None = None) -> "UserStore":
    """Factory: return a ``UserStore`` honouring onboard settings.

    Args:
        db_path: Optional override for the SQLite file path.  Defaults to
            ``get_settings().storage.sqlite_path``.
    """
    from onboard.store.user_store import UserStore

    return UserStore(db_path=db_path)
