"""Selector table loader.

Fallback selectors for every logical field are data, not code.  The
bundled ``data/selectors.json`` is loaded once; an optional override file
(``settings.wizard.selectors_path``) replaces individual keys so markup
changes on the remote site never touch control flow.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from importlib import resources
from pathlib import Path

from pydantic import TypeAdapter

from onboard.exceptions import SelectorTableError

logger = logging.getLogger(__name__)

_TABLE_ADAPTER = TypeAdapter(dict[str, list[str]])


class SelectorTable:
    """Prioritised selector alternatives keyed by logical field name."""

    def __init__(self, entries: Mapping[str, list[str]]) -> None:
        self._entries = {key: tuple(values) for key, values in entries.items()}

    def __getitem__(self, key: str) -> tuple[str, ...]:
        try:
            return self._entries[key]
        except KeyError:
            raise SelectorTableError(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def merged(self, overrides: Mapping[str, list[str]]) -> "SelectorTable":
        """Return a new table with *overrides* replacing matching keys."""
        combined = {k: list(v) for k, v in self._entries.items()}
        combined.update(overrides)
        return SelectorTable(combined)


def _parse(raw: str, source: str) -> dict[str, list[str]]:
    data = _TABLE_ADAPTER.validate_python(json.loads(raw))
    logger.debug("Loaded %d selector keys from %s", len(data), source)
    return data


@lru_cache(maxsize=4)
def load_selectors(override_path: str = "") -> SelectorTable:
    """Load the bundled selector table, applying *override_path* if given.

    Raises:
        FileNotFoundError: If *override_path* is set but missing.
        pydantic.ValidationError: If either file is not a mapping of
            string keys to string lists.
    """
    bundled = resources.files("onboard.browser").joinpath("data/selectors.json").read_text(encoding="utf-8")
    table = SelectorTable(_parse(bundled, "bundled table"))
    if override_path:
        path = Path(override_path)
        table = table.merged(_parse(path.read_text(encoding="utf-8"), str(path)))
    return table
