from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from storedash.fiscal import DateRange, parse_api_date

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]

# marks a week rolled up from daily rows before its real snapshot exists
PSEUDO_KEY = "_pseudo"


def snapshot_key(row: Mapping[str, Any]) -> Tuple[str, str]:
    return (str(row.get("StoreNbr") or ""), str(row.get("period_end") or ""))


def is_pseudo(row: Mapping[str, Any]) -> bool:
    return bool(row.get(PSEUDO_KEY))


def merge_snapshots(existing: Iterable[Mapping[str, Any]], incoming: Iterable[Mapping[str, Any]]) -> List[Snapshot]:
    """Append incoming snapshots whose (StoreNbr, period_end) is not already present.

    A real snapshot replaces a pseudo one under the same key; otherwise the
    first row seen for a key wins.
    """
    out = [dict(r) for r in existing]
    index = {snapshot_key(r): i for i, r in enumerate(out)}
    for row in incoming:
        if not isinstance(row, Mapping):
            continue
        key = snapshot_key(row)
        i = index.get(key)
        if i is None:
            index[key] = len(out)
            out.append(dict(row))
        elif is_pseudo(out[i]) and not is_pseudo(row):
            out[i] = dict(row)
    return out


class SnapshotCache:
    """In-memory weekly snapshot collection, deduplicated by store and week."""

    def __init__(self, rows: Optional[Iterable[Mapping[str, Any]]] = None):
        self._lock = threading.Lock()
        self._rows: List[Snapshot] = merge_snapshots([], rows or [])

    @property
    def rows(self) -> List[Snapshot]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def populated(self) -> bool:
        return bool(self._rows)

    def merge(self, incoming: Iterable[Mapping[str, Any]]) -> int:
        """Merge and swap in a new list; returns the number of rows added."""
        with self._lock:
            merged = merge_snapshots(self._rows, incoming)
            added = len(merged) - len(self._rows)
            self._rows = merged
        if added:
            logger.debug("snapshot cache: +%d rows (%d total)", added, len(merged))
        return added

    def clear(self) -> None:
        with self._lock:
            self._rows = []

    def drop_pseudo(self) -> int:
        """Remove rolled-up running-week rows; returns how many were dropped."""
        with self._lock:
            kept = [r for r in self._rows if not is_pseudo(r)]
            dropped = len(self._rows) - len(kept)
            self._rows = kept
        if dropped:
            logger.debug("snapshot cache: dropped %d pseudo rows", dropped)
        return dropped

    def by_period_end(self, period_end: date) -> List[Snapshot]:
        return [r for r in self._rows if parse_api_date(r.get("period_end")) == period_end]

    def in_range(self, period: DateRange) -> List[Snapshot]:
        out = []
        for r in self._rows:
            end = parse_api_date(r.get("period_end"))
            if end is not None and period.contains(end):
                out.append(r)
        return out

    def period_ends(self) -> List[str]:
        return sorted({str(r.get("period_end")) for r in self._rows if r.get("period_end")}, reverse=True)
