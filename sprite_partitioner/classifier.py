"""Icon classification with a per-process result cache."""

from __future__ import annotations

import os
import re
import threading
from typing import Any, Callable, Dict, Optional

from loguru import logger

from sprite_partitioner.config_loader import get_classifier_config
from sprite_partitioner.models import normalize_path


class IconClassifier:
    """Decide whether an asset path is an icon eligible for a sprite.

    The general rule is either an ``include`` regex or an injected
    ``matcher`` callable. Paths whose basename starts with the background
    prefix are always rejected. Results are cached per normalized path
    until the rule changes.
    """

    def __init__(
        self,
        include: str = r"\.svg$",
        background_prefix: str = "bg-",
        matcher: Optional[Callable[[str], bool]] = None,
    ):
        self._lock = threading.Lock()
        self._cache: Dict[str, bool] = {}
        self._include = include
        self._pattern = re.compile(include)
        self._background_prefix = background_prefix
        self._matcher = matcher

    @classmethod
    def from_config(cls, config: Dict[str, Any], matcher: Optional[Callable[[str], bool]] = None) -> "IconClassifier":
        cfg = get_classifier_config(config)
        return cls(include=cfg["include"], background_prefix=cfg["background_prefix"], matcher=matcher)

    @property
    def background_prefix(self) -> str:
        return self._background_prefix

    def set_rule(
        self,
        include: Optional[str] = None,
        background_prefix: Optional[str] = None,
        matcher: Optional[Callable[[str], bool]] = None,
    ) -> None:
        """Replace the matching rule and drop every cached answer."""
        with self._lock:
            if include is not None:
                self._include = include
                self._pattern = re.compile(include)
            if background_prefix is not None:
                self._background_prefix = background_prefix
            if matcher is not None:
                self._matcher = matcher
            dropped = len(self._cache)
            self._cache.clear()
        logger.debug(f"Classifier rule changed, dropped {dropped} cached results")

    def _classify(self, path: str) -> bool:
        basename = os.path.basename(path)
        if self._background_prefix and basename.startswith(self._background_prefix):
            return False
        if self._matcher is not None:
            return bool(self._matcher(path))
        return bool(self._pattern.search(path))

    def is_icon(self, path: str) -> bool:
        key = normalize_path(path)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            result = self._classify(path)
            self._cache[key] = result
        return result

    def cache_size(self) -> int:
        return len(self._cache)
