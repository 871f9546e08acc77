"""Command-line interface for the SVG sprite partitioner."""

import json
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
import yaml
from loguru import logger

from sprite_partitioner.classifier import IconClassifier
from sprite_partitioner.config_loader import ensure_directories, get_output_config, load_config
from sprite_partitioner.plugin import SpritePlugin
from sprite_partitioner.registry import BuildProcess


_XML_PROLOG_RE = re.compile(r"<\?xml[^>]*\?>|<!DOCTYPE[^>]*>", re.IGNORECASE)
_SVG_OPEN_RE = re.compile(r"<svg\b([^>]*)>", re.IGNORECASE)
_VIEWBOX_RE = re.compile(r'viewBox\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)


def setup_logging(config: dict):
    """Setup logging configuration."""
    log_config = config.get("logging", {}) or {}
    level = log_config.get("level", "INFO")
    log_file = log_config.get("file", "data/logs/sprites.log")

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}",
    )
    logger.add(
        log_file,
        level=level,
        rotation=log_config.get("rotation", "1 week"),
        retention=log_config.get("retention", "1 month"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name} | {message}",
    )


def read_symbol(path: Path) -> Tuple[str, Optional[str]]:
    """Inner markup and viewBox of an SVG file."""
    text = _XML_PROLOG_RE.sub("", path.read_text(encoding="utf-8")).strip()
    match = _SVG_OPEN_RE.search(text)
    if not match:
        return text, None

    viewbox_match = _VIEWBOX_RE.search(match.group(1))
    inner = text[match.end():]
    closing = inner.lower().rfind("</svg>")
    if closing >= 0:
        inner = inner[:closing]
    return inner.strip(), viewbox_match.group(1) if viewbox_match else None


def load_usage_manifest(manifest_path: str) -> Dict[str, List[str]]:
    """Read ``outputs: {name: [icon paths]}`` relative to the manifest file."""
    base = Path(manifest_path).resolve().parent
    with open(manifest_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    outputs = data.get("outputs", {}) if isinstance(data.get("outputs"), dict) else {}
    usage: Dict[str, List[str]] = {}
    for name, paths in outputs.items():
        usage[str(name)] = [str((base / str(p)).resolve()) for p in (paths or [])]
    return usage


def run_pass(plugin: SpritePlugin, usage: Dict[str, List[str]]):
    process = BuildProcess("cli")
    plugin.begin_pass(process)
    for output_name in sorted(usage):
        for icon_path in usage[output_name]:
            path = Path(icon_path)
            if not plugin.classifier.is_icon(icon_path):
                logger.debug(f"Skipping non-icon {icon_path}")
                continue
            if icon_path not in plugin.catalog:
                content, viewbox = read_symbol(path)
                plugin.add_icon(icon_path, content, viewbox=viewbox)
            plugin.report(process, icon_path, output_name=output_name)
    return plugin.finalize_pass(process)


def write_mapping(mapping_file: str):
    def _write(mapping):
        path = Path(mapping_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(dict(mapping), indent=2, sort_keys=True), encoding="utf-8")
        logger.info(f"Icon mapping written to {path}")

    return _write


@click.group()
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """SVG sprite partitioner - shared icon sprites for multi-output builds."""
    ctx.ensure_object(dict)

    try:
        cfg = load_config(config)
        ctx.obj["config"] = cfg
        ctx.obj["config_path"] = config

        if verbose:
            cfg["logging"] = dict(cfg.get("logging") or {}, level="DEBUG")
        setup_logging(cfg)

        logger.info("Sprite partitioner initialized")

    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("manifest", type=click.Path(exists=True))
@click.option("--output-dir", "-o", type=click.Path(), default=None, help="Directory for sprite files")
@click.option("--filename", "-f", default=None, help="Sprite filename template, e.g. sprite-[index]-[chunkcode].svg")
@click.option("--partition/--no-partition", default=None, help="Split sprites by output usage")
@click.option("--dry-run", is_flag=True, help="Show partitions without writing files")
@click.pass_context
def build(ctx, manifest: str, output_dir: Optional[str], filename: Optional[str], partition: Optional[bool], dry_run: bool):
    """Build shared sprites from a usage manifest."""
    config = ctx.obj["config"]
    output_cfg = get_output_config(config)
    output_dir = output_dir or output_cfg["dir"]

    overrides = {}
    if filename:
        overrides["filename_template"] = filename
    if partition is not None:
        overrides["partition"] = partition

    logger.info(f"Building sprites: manifest={manifest}, output_dir={output_dir}, dry_run={dry_run}")

    try:
        plugin = SpritePlugin.from_config(
            config,
            process_output=None if dry_run else write_mapping(output_cfg["mapping_file"]),
            **overrides,
        )
        if not dry_run:
            ensure_directories(config)
            Path(output_dir).mkdir(parents=True, exist_ok=True)
        result = run_pass(plugin, load_usage_manifest(manifest))

        click.echo(f"\n{'='*60}")
        click.echo("SPRITE BUILD")
        click.echo(f"{'='*60}")
        if result.is_empty:
            click.echo("No icons used, nothing emitted.")
        for key in sorted(result.assets):
            asset = result.assets[key]
            click.echo(f"[{asset.partition_index}] {key} ({asset.size()} bytes): {', '.join(asset.icon_ids)}")
            if not dry_run:
                target = Path(output_dir) / key
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(asset.content, encoding="utf-8")
        for output_name in sorted(result.output_config):
            sets = result.output_config[output_name]["sets"]
            click.echo(f"  {output_name}: {', '.join(sets)}")
        click.echo(f"{'='*60}")

    except Exception as e:
        logger.exception("Sprite build failed")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def classify(ctx, paths):
    """Show which asset paths are treated as icons."""
    classifier = IconClassifier.from_config(ctx.obj["config"])
    for path in paths:
        label = "icon" if classifier.is_icon(path) else "skip"
        click.echo(f"{label}\t{path}")


if __name__ == "__main__":
    cli()
