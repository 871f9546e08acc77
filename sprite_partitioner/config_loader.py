"""Configuration loader for the SVG sprite partitioner."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


DEFAULT_FILENAME_TEMPLATE = "sprite-[index]-[chunkcode].svg"
DEFAULT_INCLUDE_PATTERN = r"\.svg$"
DEFAULT_BACKGROUND_PREFIX = "bg-"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default locations.

    Returns:
        Dictionary with configuration values.
    """
    # Load environment variables first
    load_dotenv()

    if config_path is None:
        locations = [
            "config.yaml",
            "config.yml",
            "../config.yaml",
            "../config.yml",
        ]
        for loc in locations:
            if Path(loc).exists():
                config_path = loc
                break

    if config_path is None or not Path(config_path).exists():
        raise FileNotFoundError("Configuration file not found. Please provide config.yaml")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    return _substitute_env_vars(config)


def _substitute_env_vars(obj: Any) -> Any:
    """Recursively substitute environment variables in config.

    Supports syntax: ${VAR_NAME} or ${VAR_NAME:default_value}
    """
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return _substitute_env_string(obj)
    else:
        return obj


def _substitute_env_string(value: str) -> str:
    pattern = r'\$\{([^}]+)\}'

    def replace(match):
        var_expr = match.group(1)
        if ':' in var_expr:
            var_name, default = var_expr.split(':', 1)
            return os.getenv(var_name, default)
        else:
            return os.getenv(var_expr, match.group(0))

    return re.sub(pattern, replace, value)


def _as_bool(value: Any, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _safe_positive_int(value: Any, fallback: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return fallback
    return parsed if parsed > 0 else fallback


def get_sprite_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get sprite configuration with defaults applied."""
    sprite = config.get("sprite", {}) if isinstance(config.get("sprite"), dict) else {}
    return {
        "filename": str(sprite.get("filename") or DEFAULT_FILENAME_TEMPLATE),
        "public_path": str(sprite.get("public_path") or ""),
        "partition": _as_bool(sprite.get("partition"), True),
        "symbol_id": str(sprite.get("symbol_id") or "[name]"),
        "entry_extension": str(sprite.get("entry_extension", ".css") or ""),
        "max_workers": _safe_positive_int(sprite.get("max_workers"), 4),
    }


def get_classifier_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get icon classifier configuration."""
    classifier = config.get("classifier", {}) if isinstance(config.get("classifier"), dict) else {}
    return {
        "include": str(classifier.get("include") or DEFAULT_INCLUDE_PATTERN),
        "background_prefix": str(classifier.get("background_prefix", DEFAULT_BACKGROUND_PREFIX) or ""),
    }


def get_output_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get output locations used by the command-line host."""
    output = config.get("output", {}) if isinstance(config.get("output"), dict) else {}
    output_dir = str(output.get("dir") or "dist")
    return {
        "dir": output_dir,
        "mapping_file": str(output.get("mapping_file") or f"{output_dir}/icons.json"),
    }


def ensure_directories(config: Dict[str, Any]):
    """Ensure all required directories exist."""
    output = get_output_config(config)
    Path(output["dir"]).mkdir(parents=True, exist_ok=True)
    Path(output["mapping_file"]).parent.mkdir(parents=True, exist_ok=True)

    # Log directory
    log_path = config.get("logging", {}).get("file", "data/logs/sprites.log")
    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
