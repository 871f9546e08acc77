"""Icon usage registry shared by a build process and its child processes."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Set

from loguru import logger

from sprite_partitioner.models import normalize_path


SINGLE_OUTPUT_NAME = "single-entry"


class UsageMode(str, Enum):
    SINGLE = "single"
    MULTI = "multi"


class RegistryClosedError(RuntimeError):
    """Raised when usage is reported after the phase boundary."""


@dataclass
class ModuleRef:
    """A module in the host graph; ``issuer`` points at the module that pulled it in."""

    resource: str
    issuer: Optional["ModuleRef"] = None

    def root(self) -> "ModuleRef":
        module = self
        while module.issuer is not None:
            module = module.issuer
        return module


def owning_output_name(module: Optional[ModuleRef], mode: UsageMode, entry_extension: str = ".css") -> Optional[str]:
    """Name of the output a module belongs to, or None when it cannot be resolved."""
    if mode == UsageMode.SINGLE:
        return SINGLE_OUTPUT_NAME
    if module is None:
        return None

    resource = module.root().resource
    if not resource:
        return None

    name = os.path.basename(resource)
    if entry_extension and name.endswith(entry_extension):
        name = name[: -len(entry_extension)]
    return name or None


class UsageRegistry:
    """Thread-safe multimap of icon path -> output names for one build pass."""

    def __init__(self):
        self._lock = threading.Lock()
        self._usage: Optional[Dict[str, Set[str]]] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def report(self, icon_path: str, output_name: Optional[str], mode: UsageMode = UsageMode.MULTI) -> bool:
        """Record that ``output_name`` uses ``icon_path``.

        Returns False when the report was ignored (no owning output).
        """
        if mode == UsageMode.SINGLE:
            output_name = SINGLE_OUTPUT_NAME
        if not output_name:
            logger.debug(f"No owning output for {icon_path}, usage ignored")
            return False

        key = normalize_path(icon_path)
        with self._lock:
            if self._closed:
                raise RegistryClosedError(f"Usage registry is closed, cannot report {key}")
            if self._usage is None:
                self._usage = {}

            outputs = self._usage.get(key)
            if outputs is None:
                self._usage[key] = {output_name}
            elif mode == UsageMode.MULTI:
                outputs.add(output_name)
        return True

    def close(self) -> Mapping[str, FrozenSet[str]]:
        """Close the reporting phase and return a read-only snapshot."""
        with self._lock:
            if self._closed:
                raise RegistryClosedError("Usage registry already closed")
            self._closed = True
            usage = self._usage or {}
            snapshot = {path: frozenset(outputs) for path, outputs in usage.items()}
        logger.debug(f"Usage registry closed with {len(snapshot)} icons")
        return MappingProxyType(snapshot)

    def __len__(self) -> int:
        return len(self._usage or {})


class BuildProcess:
    """A build process; child processes keep a reference to their parent."""

    def __init__(self, name: str, parent: Optional["BuildProcess"] = None):
        self.name = name
        self.parent = parent
        self._registry: Optional[UsageRegistry] = None
        self._lock = threading.Lock()

    def spawn_child(self, name: str) -> "BuildProcess":
        return BuildProcess(name, parent=self)

    @property
    def is_child(self) -> bool:
        return self.parent is not None

    def root(self) -> "BuildProcess":
        process = self
        while process.parent is not None:
            process = process.parent
        return process

    def attach_registry(self, registry: Optional[UsageRegistry] = None) -> UsageRegistry:
        """Attach a fresh registry to this process, replacing any previous one."""
        with self._lock:
            self._registry = registry or UsageRegistry()
            return self._registry

    def get_or_attach_registry(self) -> UsageRegistry:
        with self._lock:
            if self._registry is None:
                self._registry = UsageRegistry()
            return self._registry


def resolve_registry(process: BuildProcess) -> UsageRegistry:
    """Return the registry owned by the top-level process above ``process``."""
    return process.root().get_or_attach_registry()
