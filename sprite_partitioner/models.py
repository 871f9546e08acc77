"""Data models for icons, partitions and emitted sprite artifacts."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger


class DuplicateIconIdError(ValueError):
    """Two different icon paths resolved to the same symbol id."""


def normalize_path(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


def process_template(template: str, params: Dict[str, object]) -> str:
    """Replace ``[key]`` placeholders; unknown placeholders stay verbatim."""
    result = template
    for key, value in params.items():
        result = result.replace(f"[{key}]", str(value))
    return result


@dataclass(frozen=True)
class Icon:
    """A vector symbol eligible for sprite inclusion."""

    path: str
    id: str
    content: str
    sprite_filename: str
    viewbox: Optional[str] = None

    def render(self) -> str:
        return self.content


@dataclass
class Partition:
    index: int
    icons: List[Icon] = field(default_factory=list)
    filename: Optional[str] = None

    @property
    def icon_ids(self) -> List[str]:
        return [icon.id for icon in self.icons]


@dataclass(frozen=True)
class SpriteAsset:
    partition_index: int
    filename: str
    content: str
    icon_ids: tuple

    def size(self) -> int:
        return len(self.content)


@dataclass
class OutputChunk:
    """Logical build output registered for every emitted sprite."""

    name: str
    files: List[str] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)


@dataclass
class PassResult:
    assets: Dict[str, SpriteAsset] = field(default_factory=dict)
    chunks: List[OutputChunk] = field(default_factory=list)
    mapping: Dict[str, str] = field(default_factory=dict)
    output_config: Dict[str, Dict[str, object]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.assets


class IconCatalog:
    """Icons known to a build process, keyed by normalized source path.

    Symbol content is supplied once per path and never replaced; adding the
    same path again returns the icon created first.
    """

    def __init__(self, symbol_id_template: str = "[name]"):
        self.symbol_id_template = symbol_id_template
        self._icons: Dict[str, Icon] = {}
        self._paths_by_id: Dict[str, str] = {}
        self._lock = threading.Lock()

    def symbol_id_for(self, path: str) -> str:
        stem, ext = os.path.splitext(os.path.basename(path))
        return process_template(self.symbol_id_template, {"name": stem, "ext": ext.lstrip(".")})

    def add(self, path: str, content: str, sprite_filename: str, viewbox: Optional[str] = None) -> Icon:
        key = normalize_path(path)
        with self._lock:
            existing = self._icons.get(key)
            if existing is not None:
                return existing

            icon_id = self.symbol_id_for(key)
            owner = self._paths_by_id.get(icon_id)
            if owner is not None:
                raise DuplicateIconIdError(
                    f"Icon id '{icon_id}' from {key} already used by {owner}"
                )

            icon = Icon(path=key, id=icon_id, content=content, sprite_filename=sprite_filename, viewbox=viewbox)
            self._icons[key] = icon
            self._paths_by_id[icon_id] = key
            logger.debug(f"Registered icon '{icon_id}' from {key}")
            return icon

    def discard(self, path: str) -> bool:
        """Forget an icon so changed content can be supplied on the next pass."""
        key = normalize_path(path)
        with self._lock:
            icon = self._icons.pop(key, None)
            if icon is None:
                return False
            self._paths_by_id.pop(icon.id, None)
        return True

    def get(self, path: str) -> Optional[Icon]:
        return self._icons.get(normalize_path(path))

    def __len__(self) -> int:
        return len(self._icons)

    def __contains__(self, path: str) -> bool:
        return normalize_path(path) in self._icons
