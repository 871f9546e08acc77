"""Build-pass orchestration: usage reporting, partitioning and sprite emission."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional

from loguru import logger

from sprite_partitioner.classifier import IconClassifier
from sprite_partitioner.config_loader import DEFAULT_FILENAME_TEMPLATE, get_sprite_config
from sprite_partitioner.models import Icon, IconCatalog, OutputChunk, PassResult
from sprite_partitioner.partitioning import (
    build_output_config,
    build_partitions,
    coalesce_partitions,
    compute_signature_index,
)
from sprite_partitioner.registry import (
    BuildProcess,
    ModuleRef,
    UsageMode,
    UsageRegistry,
    owning_output_name,
    resolve_registry,
)
from sprite_partitioner.sprite import SpriteRenderer, assemble_all, collect_filenames, render_sprite
from sprite_partitioner.tracker import OutputMappingTracker, get_default_tracker


ProcessOutput = Callable[[Mapping[str, str]], None]


class SpritePlugin:
    """Collect icon usage during a pass and emit one shared sprite per partition.

    A pass runs ``begin_pass`` on the top-level process, any number of
    ``process_module``/``report`` calls from that process or its children,
    then ``finalize_pass`` once usage is final.
    """

    def __init__(
        self,
        filename_template: str = DEFAULT_FILENAME_TEMPLATE,
        public_path: str = "",
        partition: bool = True,
        symbol_id: str = "[name]",
        entry_extension: str = ".css",
        max_workers: int = 4,
        classifier: Optional[IconClassifier] = None,
        tracker: Optional[OutputMappingTracker] = None,
        renderer: SpriteRenderer = render_sprite,
        process_output: Optional[ProcessOutput] = None,
    ):
        self.filename_template = filename_template
        self.public_path = public_path
        self.mode = UsageMode.MULTI if partition else UsageMode.SINGLE
        self.entry_extension = entry_extension
        self.max_workers = max_workers
        self.classifier = classifier if classifier is not None else IconClassifier()
        self.tracker = tracker if tracker is not None else get_default_tracker()
        self.renderer = renderer
        self.process_output = process_output
        self.catalog = IconCatalog(symbol_id)

    @classmethod
    def from_config(cls, config: Dict[str, Any], **kwargs) -> "SpritePlugin":
        cfg = get_sprite_config(config)
        params = {
            "filename_template": cfg["filename"],
            "public_path": cfg["public_path"],
            "partition": cfg["partition"],
            "symbol_id": cfg["symbol_id"],
            "entry_extension": cfg["entry_extension"],
            "max_workers": cfg["max_workers"],
        }
        params.update(kwargs)
        if params.get("classifier") is None:
            params["classifier"] = IconClassifier.from_config(config)
        return cls(**params)

    def begin_pass(self, process: BuildProcess) -> UsageRegistry:
        """Attach a fresh registry to the top-level process for a new pass."""
        if process.is_child:
            return resolve_registry(process)
        logger.debug(f"Starting sprite pass for {process.name}")
        return process.attach_registry()

    def add_icon(self, path: str, content: str, viewbox: Optional[str] = None) -> Optional[Icon]:
        if not self.classifier.is_icon(path):
            return None
        return self.catalog.add(path, content, self.filename_template, viewbox=viewbox)

    def invalidate(self, path: str) -> bool:
        return self.catalog.discard(path)

    def report(
        self,
        process: BuildProcess,
        icon_path: str,
        module: Optional[ModuleRef] = None,
        output_name: Optional[str] = None,
    ) -> bool:
        """Record usage of an icon by the output owning ``module``."""
        if not self.classifier.is_icon(icon_path):
            return False
        if output_name is None:
            output_name = owning_output_name(module, self.mode, self.entry_extension)
        return resolve_registry(process).report(icon_path, output_name, self.mode)

    def process_module(
        self,
        process: BuildProcess,
        icon_path: str,
        content: str,
        module: Optional[ModuleRef] = None,
        viewbox: Optional[str] = None,
    ) -> str:
        """Per-module hook: register the icon, report its usage, pass content through."""
        if self.add_icon(icon_path, content, viewbox=viewbox) is not None:
            self.report(process, icon_path, module=module)
        return content

    def finalize_pass(self, process: BuildProcess) -> PassResult:
        """Close usage, partition it and assemble every sprite.

        Rendering errors propagate and leave the output mapping untouched.
        """
        if process.is_child:
            raise ValueError(f"Sprite pass must be finalized on the top-level process, not {process.name}")

        usage = resolve_registry(process).close()
        icons = []
        for path in sorted(usage):
            icon = self.catalog.get(path)
            if icon is None:
                logger.warning(f"Icon {path} was reported without symbol content, skipped")
                continue
            icons.append(icon)

        if not icons:
            logger.info("No icons used in this pass, nothing to emit")
            return PassResult(mapping=dict(self.tracker.current_mapping()))

        template = icons[0].sprite_filename
        signature_index = compute_signature_index(usage)
        partitions = coalesce_partitions(build_partitions(icons, signature_index), template)
        assets = assemble_all(partitions, template, renderer=self.renderer, max_workers=self.max_workers)

        pass_mapping = collect_filenames(assets)
        result = PassResult()
        for asset in assets:
            result.assets[self.public_path + asset.filename] = asset
            chunk_name = asset.filename[:-4] if asset.filename.endswith(".svg") else asset.filename
            result.chunks.append(OutputChunk(name=chunk_name, files=[asset.filename]))

        self.tracker.merge(pass_mapping)
        current = self.tracker.current_mapping()
        result.mapping = dict(current)
        result.output_config = build_output_config(usage, {icon.path: icon for icon in icons}, pass_mapping)

        logger.info(f"Emitted {len(assets)} sprites for {len(icons)} icons")

        if callable(self.process_output):
            self.process_output(current)

        return result
