"""Composite sprite rendering and content-addressed filenames."""

from __future__ import annotations

import hashlib
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from html import escape
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from sprite_partitioner.models import Icon, Partition, SpriteAsset, process_template


CHUNKCODE_TOKEN = "[chunkcode]"
SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

SpriteRenderer = Callable[[Sequence[Icon]], str]


def content_hash(content: str) -> str:
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def resolve_filename(template: str, index: int, icons: Sequence[Icon]) -> str:
    """Substitute ``[index]`` and, when present, ``[chunkcode]``.

    The chunk code is the digest of the icons' rendered symbols joined in
    list order, each preceded by its viewBox when it has one.
    """
    filename = process_template(template, {"index": index})
    if CHUNKCODE_TOKEN in filename:
        joined = "".join((icon.viewbox or "") + icon.render() for icon in icons)
        filename = filename.replace(CHUNKCODE_TOKEN, content_hash(joined))
    return filename


def render_symbol(icon: Icon) -> str:
    attrs = f'id="{escape(icon.id, quote=True)}"'
    if icon.viewbox:
        attrs += f' viewBox="{escape(icon.viewbox, quote=True)}"'
    return f"<symbol {attrs}>{icon.render()}</symbol>"


def render_sprite(icons: Sequence[Icon]) -> str:
    """Wrap every icon symbol into one SVG document."""
    symbols = "".join(render_symbol(icon) for icon in icons)
    return f'<svg xmlns="{SVG_NAMESPACE}" xmlns:xlink="{XLINK_NAMESPACE}">{symbols}</svg>'


def assemble(
    partition_index: int,
    icons: Sequence[Icon],
    template: str,
    renderer: SpriteRenderer = render_sprite,
) -> SpriteAsset:
    filename = resolve_filename(template, partition_index, icons)
    content = renderer(icons)
    logger.debug(f"Assembled sprite {filename} with {len(icons)} icons")
    return SpriteAsset(
        partition_index=partition_index,
        filename=filename,
        content=content,
        icon_ids=tuple(icon.id for icon in icons),
    )


def assemble_all(
    partitions: List[Partition],
    template: str,
    renderer: SpriteRenderer = render_sprite,
    max_workers: int = 4,
    executor: Optional[ThreadPoolExecutor] = None,
) -> List[SpriteAsset]:
    """Assemble every partition concurrently and wait for all of them.

    If any partition fails, the first failure in partition order is raised
    after every task has finished, and no result is returned.
    """
    if not partitions:
        return []

    own_executor = executor is None
    pool = executor or ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(partitions))))
    try:
        futures = [
            pool.submit(assemble, partition.index, list(partition.icons), template, renderer)
            for partition in partitions
        ]
        wait(futures, return_when=ALL_COMPLETED)
    finally:
        if own_executor:
            pool.shutdown(wait=True)

    failures = [(partition, future.exception()) for partition, future in zip(partitions, futures) if future.exception()]
    if failures:
        partition, error = failures[0]
        logger.error(f"Sprite assembly failed for partition {partition.index}: {error}")
        raise error

    assets = [future.result() for future in futures]
    for partition, asset in zip(partitions, assets):
        partition.filename = asset.filename
    return assets


def collect_filenames(assets: Sequence[SpriteAsset]) -> Dict[str, str]:
    """Icon id -> sprite filename for a set of assembled sprites."""
    mapping: Dict[str, str] = {}
    for asset in assets:
        for icon_id in asset.icon_ids:
            mapping[icon_id] = asset.filename
    return mapping
