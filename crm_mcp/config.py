"""
MCP server configuration and path resolution.

The project root is MCP_PROJECT_ROOT when it points at an existing
directory, otherwise the nearest ancestor of the working directory holding
pyproject.toml or package.json. An optional .mcp-config.json there is
merged section by section over DEFAULT_CONFIG.
"""
import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from crm.core.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_FILE_NAME = ".mcp-config.json"
ROOT_MARKERS = ("pyproject.toml", "package.json")
MAX_ROOT_DEPTH = 10

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "name": "Generic MCP Server",
        "version": "1.0.0",
        "description": "Generic development tools MCP server",
    },
    "paths": {
        "docs_dir": "docs",
    },
    "features": {
        "docs": True,
        "biome": True,
    },
    "timezone": None,
}


def find_project_root(cwd: Optional[Path] = None) -> Path:
    """
    Locate the project root.

    Args:
        cwd: Starting directory, the process working directory by default

    Returns:
        Absolute path of the project root
    """
    env_root = os.getenv("MCP_PROJECT_ROOT")
    if env_root:
        candidate = Path(env_root).expanduser().resolve()
        if candidate.is_dir():
            return candidate
        logger.warning(f"MCP_PROJECT_ROOT does not exist: {candidate}")

    start = (cwd or Path.cwd()).resolve()
    current = start
    for _ in range(MAX_ROOT_DEPTH):
        if any((current / marker).exists() for marker in ROOT_MARKERS):
            return current
        if current.parent == current:
            break
        current = current.parent
    return start


def merge_config(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge user config over defaults: dict sections key by key, scalars replaced."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load .mcp-config.json from the project root merged over the defaults.

    A missing file gives the defaults. An unreadable or invalid file is
    logged and the defaults are used.
    """
    root = project_root or find_project_root()
    config_path = root / CONFIG_FILE_NAME
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        user_config = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {config_path}: {e}; using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(user_config, dict):
        logger.warning(f"{config_path} must contain a JSON object; using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    return merge_config(DEFAULT_CONFIG, user_config)


def docs_path(config: Dict[str, Any], project_root: Path) -> Path:
    return (project_root / config["paths"]["docs_dir"]).resolve()


def path_report(config: Dict[str, Any], project_root: Path) -> str:
    """Human-readable dump of the resolved paths, for the getDocs debug flag."""
    config_path = project_root / CONFIG_FILE_NAME
    lines = [
        "=== MCP Path Configuration Debug ===",
        f"Project Root: {project_root}",
        f"Docs Directory: {config['paths']['docs_dir']} ({docs_path(config, project_root)})",
        f"Config File: {config_path} (exists: {config_path.exists()})",
        f"Current Working Directory: {Path.cwd()}",
        f"MCP_PROJECT_ROOT env: {os.getenv('MCP_PROJECT_ROOT') or 'not set'}",
        "======================================",
    ]
    return "\n".join(lines)
