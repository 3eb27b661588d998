"""MVA table backing store: a YAML list of entries under the config dir.

Writers (the CLI, a configuration screen) go through this module; the
calculator never reads the file directly. It only sees MvaTable snapshots
built by ``load_table``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from filelock import FileLock

from impostos import config as _config
from impostos.models.mva import MvaKey, MvaTableEntry
from impostos.services.exceptions import MvaStoreError
from impostos.services.mva_table import MvaTable
from impostos.utils.validators import validate_flag, validate_product_code, validate_uf

logger = logging.getLogger(__name__)


def _store_path() -> Path:
    return _config.get_mva_path()


def _backup_corrupt(path: Path) -> Path:
    """Rename a corrupt file to a timestamped backup before it gets overwritten."""
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
    backup = path.with_name(f"{path.name}.corrupt.{ts}")
    path.rename(backup)
    logger.warning("Corrupt file backed up: %s → %s", path, backup)
    return backup


@contextmanager
def _locked() -> Iterator[None]:
    """Hold an exclusive file lock during store read-modify-write."""
    sp = _store_path()
    sp.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(sp.with_suffix(".lock"))
    with lock:
        yield


def _load() -> list[dict[str, Any]]:
    sp = _store_path()
    if not sp.exists():
        return []
    try:
        data = yaml.safe_load(sp.read_text(encoding="utf-8"))
    except yaml.YAMLError:
        _backup_corrupt(sp)
        return []
    if data is None:
        return []
    if not isinstance(data, list):
        raise MvaStoreError(f"{sp}: esperado uma lista de entradas MVA")
    return data


def _save(entries: list[dict[str, Any]]) -> None:
    sp = _store_path()
    sp.parent.mkdir(parents=True, exist_ok=True)
    tmp = sp.with_suffix(".tmp")
    tmp.write_text(
        yaml.safe_dump(entries, default_flow_style=False, allow_unicode=True, sort_keys=False),
        encoding="utf-8",
    )
    os.replace(tmp, sp)


def _key_of(row: dict[str, Any]) -> MvaKey:
    destination = row.get("uf_destino") or row["uf"]
    return MvaKey.of(row["ncm"], row.get("uf_origem") or destination, destination)


def list_entries(
    uf: str | None = None,
    ncm: str | None = None,
    active_only: bool = False,
) -> list[dict[str, Any]]:
    """Return stored entries, optionally filtered by destination UF and NCM."""
    with _locked():
        entries = _load()
    if uf:
        uf = validate_uf(uf)
        entries = [e for e in entries if _key_of(e).destination_uf == uf]
    if ncm:
        ncm = validate_product_code(ncm)
        entries = [e for e in entries if _key_of(e).product == ncm]
    if active_only:
        entries = [e for e in entries if validate_flag(e.get("ativo", True), "ativo")]
    return entries


def upsert_entry(entry: dict[str, Any]) -> dict[str, Any]:
    """Insert or replace the entry with the same NCM and UF pair.

    The entry is validated and normalized before it is written.
    """
    normalized = MvaTableEntry.from_dict(entry).to_dict()
    key = _key_of(normalized)

    with _locked():
        entries = _load()
        for index, existing in enumerate(entries):
            if _key_of(existing) == key:
                entries[index] = normalized
                break
        else:
            entries.append(normalized)
        _save(entries)
    return normalized


def deactivate_entry(ncm: str, origin_uf: str, destination_uf: str) -> bool:
    """Soft delete: mark the entry inactive. Returns False if not found."""
    key = MvaKey.of(ncm, origin_uf, destination_uf)
    with _locked():
        entries = _load()
        target = next((e for e in entries if _key_of(e) == key), None)
        if target is None:
            return False
        if target.get("ativo", True):
            target["ativo"] = False
            _save(entries)
        return True


def remove_entry(ncm: str, origin_uf: str, destination_uf: str) -> bool:
    """Hard delete an entry. Returns False if not found."""
    key = MvaKey.of(ncm, origin_uf, destination_uf)
    with _locked():
        entries = _load()
        filtered = [e for e in entries if _key_of(e) != key]
        if len(filtered) == len(entries):
            return False
        _save(filtered)
        return True


def load_table() -> MvaTable:
    """Build a fresh MvaTable snapshot from the store."""
    with _locked():
        entries = _load()
    return MvaTable.from_dicts(entries)


# --- Health check (read-only, no locks) ---


@dataclass
class StoreHealth:
    store_ok: bool
    entry_count: int
    corrupt_backups: list[str] = field(default_factory=list)


def check_store_health() -> StoreHealth:
    """Probe the store file for corruption without touching it."""
    sp = _store_path()
    ok = True
    count = 0
    if sp.exists():
        try:
            data = yaml.safe_load(sp.read_text(encoding="utf-8"))
            if data is None:
                data = []
            if not isinstance(data, list):
                raise ValueError("not a list")
            count = len(data)
        except (yaml.YAMLError, ValueError):
            ok = False
    if sp.parent.exists():
        backups = sorted(str(p) for p in sp.parent.glob(f"{sp.name}.corrupt.*"))
    else:
        backups = []
    return StoreHealth(store_ok=ok, entry_count=count, corrupt_backups=backups)
