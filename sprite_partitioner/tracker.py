"""Cumulative icon id -> sprite filename mapping kept across build passes."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from loguru import logger


class OutputMappingTracker:
    """Additive mapping; entries are added or overwritten, never removed."""

    def __init__(self):
        self._lock = threading.Lock()
        self._mapping: Dict[str, str] = {}

    def merge(self, pass_result: Mapping[str, str]) -> None:
        with self._lock:
            changed = sum(1 for key, value in pass_result.items() if self._mapping.get(key) != value)
            self._mapping.update(pass_result)
            total = len(self._mapping)
        logger.debug(f"Output mapping merged: {changed} changed, {total} total")

    def current_mapping(self) -> Mapping[str, str]:
        """Read-only snapshot of the mapping."""
        with self._lock:
            return MappingProxyType(dict(self._mapping))

    def __len__(self) -> int:
        return len(self._mapping)


_default_tracker: Optional[OutputMappingTracker] = None
_default_lock = threading.Lock()


def get_default_tracker() -> OutputMappingTracker:
    """Process-wide tracker, created on first use."""
    global _default_tracker
    with _default_lock:
        if _default_tracker is None:
            _default_tracker = OutputMappingTracker()
        return _default_tracker
