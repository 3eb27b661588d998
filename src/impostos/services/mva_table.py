"""MVA table: immutable lookup snapshot and its owner.

A table is built wholesale from configuration and never patched. Refreshing
means building a new MvaTable and publishing it through an MvaTableHolder;
callers that already took a snapshot keep computing against it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from decimal import Decimal
from types import MappingProxyType

from impostos.models.mva import MvaKey, MvaTableEntry

logger = logging.getLogger(__name__)

NO_MVA = Decimal("0")


class MvaTable:
    """Read-only mapping MvaKey -> MvaTableEntry with O(1) lookup."""

    def __init__(self, entries: Iterable[MvaTableEntry] = ()) -> None:
        index: dict[MvaKey, MvaTableEntry] = {}
        for entry in entries:
            if not entry.active:
                continue
            if entry.key in index:
                logger.warning("Duplicate MVA entry for %s; keeping the last one", entry.key)
            index[entry.key] = entry
        self._entries = MappingProxyType(index)

    @classmethod
    def from_dicts(cls, rows: Iterable[dict]) -> MvaTable:
        return cls(MvaTableEntry.from_dict(row) for row in rows)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def entries(self) -> list[MvaTableEntry]:
        return list(self._entries.values())

    def get(self, key: MvaKey) -> MvaTableEntry | None:
        return self._entries.get(key)

    def resolve(self, key: MvaKey) -> Decimal:
        """Return the MVA percent for ``key``, or 0 when no ST applies.

        A missing key is not an error: it means no substitution regime.
        """
        entry = self._entries.get(key)
        if entry is None or not entry.subject_to_st:
            return NO_MVA
        return entry.mva_percent

    def internal_rate(self, key: MvaKey) -> Decimal | None:
        entry = self._entries.get(key)
        return entry.internal_rate_percent if entry is not None else None


def resolve_mva(key: MvaKey, table: MvaTable) -> Decimal:
    return table.resolve(key)


class MvaTableHolder:
    """Owns the current MvaTable snapshot and swaps it atomically."""

    def __init__(self, table: MvaTable | None = None) -> None:
        self._table = table if table is not None else MvaTable()
        self._lock = threading.Lock()

    def current(self) -> MvaTable:
        return self._table

    def publish(self, table: MvaTable) -> MvaTable:
        """Replace the snapshot; returns the previous one."""
        with self._lock:
            previous, self._table = self._table, table
        logger.info("MVA table published: %d entries", len(table))
        return previous
