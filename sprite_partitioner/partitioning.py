"""Group icons with identical usage into numbered sprite partitions."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from loguru import logger

from sprite_partitioner.models import Icon, Partition, process_template


SIGNATURE_DELIMITER = "&"


def usage_signature(names: Iterable[str]) -> str:
    """Canonical key for a set of output or chunk names."""
    return SIGNATURE_DELIMITER.join(sorted(set(names)))


def compute_signature_index(usage: Mapping[str, Iterable[str]]) -> Dict[str, int]:
    """Assign a partition index to every key of a closed usage relation.

    Keys are scanned in sorted order. The first distinct signature gets 0,
    the next distinct one 1, and so on; keys with equal signatures share
    an index.
    """
    indexes: Dict[str, int] = {}
    seen: Dict[str, int] = {}
    next_index = 0

    for key in sorted(usage):
        signature = usage_signature(usage[key])
        if signature in seen:
            indexes[key] = seen[signature]
        else:
            seen[signature] = next_index
            indexes[key] = next_index
            next_index += 1

    return indexes


def build_partitions(icons: List[Icon], signature_index: Mapping[str, int]) -> List[Partition]:
    """Collect icons into partitions ordered by index.

    Icons missing from the index were never reported with an owning output
    and are left out of every sprite.
    """
    by_index: Dict[int, Partition] = {}
    skipped = []

    for icon in sorted(icons, key=lambda item: item.path):
        index = signature_index.get(icon.path)
        if index is None:
            skipped.append(icon.id)
            continue
        partition = by_index.setdefault(index, Partition(index=index))
        partition.icons.append(icon)

    if skipped:
        logger.warning(f"{len(skipped)} icons have no owning output and were excluded: {', '.join(skipped)}")

    return [by_index[index] for index in sorted(by_index)]


def coalesce_partitions(partitions: List[Partition], filename_template: str) -> List[Partition]:
    """Merge partitions whose index-resolved filenames collide.

    Only happens when the template has no ``[index]`` token; the merged
    partition keeps the lowest index.
    """
    by_name: Dict[str, Partition] = {}
    for partition in partitions:
        name = process_template(filename_template, {"index": partition.index})
        target = by_name.get(name)
        if target is None:
            by_name[name] = Partition(index=partition.index, icons=list(partition.icons))
        else:
            target.icons.extend(partition.icons)

    if len(by_name) < len(partitions):
        logger.warning(
            f"Filename template '{filename_template}' has no [index] token, "
            f"{len(partitions)} partitions merged into {len(by_name)}"
        )
    return sorted(by_name.values(), key=lambda item: item.index)


def build_output_config(
    usage: Mapping[str, Iterable[str]],
    icons_by_path: Mapping[str, Icon],
    mapping: Mapping[str, str],
) -> Dict[str, Dict[str, object]]:
    """Per output name: sprite filename of each icon and the sprite sets to load."""
    result: Dict[str, Dict[str, object]] = {}

    for path in sorted(usage):
        icon = icons_by_path.get(path)
        if icon is None or icon.id not in mapping:
            continue
        filename = mapping[icon.id]

        for output_name in sorted(set(usage[path])):
            current = result.setdefault(output_name, {"icons": {}, "sets": []})
            current["icons"][icon.id] = filename
            if filename not in current["sets"]:
                current["sets"].append(filename)

    for current in result.values():
        current["sets"].sort()

    return result
