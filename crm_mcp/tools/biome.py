"""
biome-lint / biome-format - run the Biome toolchain through npx.

The command runs from the project root of the first path (nearest ancestor
holding biome.json or package.json) and uses its biome.json when present.
On failure the tool returns a report of what it tried instead of raising,
so the agent can see paths, config and process output.
"""
import os
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from mcp.server.fastmcp import FastMCP

from crm.core.logging_config import get_logger

logger = get_logger(__name__)

BIOME_ROOT_MARKERS = ("biome.json", "package.json")
BIOME_TIMEOUT_SECONDS = 120


def find_biome_root(start: str) -> Path:
    """Nearest ancestor of start holding a root marker, else start's directory."""
    path = Path(start).resolve()
    origin = path.parent if not path.is_dir() else path
    current = origin
    while current.parent != current:
        if any((current / marker).exists() for marker in BIOME_ROOT_MARKERS):
            return current
        current = current.parent
    return origin


def build_biome_command(action: str, paths: List[str], config_path: Optional[Path]) -> List[str]:
    """
    Args:
        action: "lint" or "format"
        paths: Files to process
        config_path: biome.json to pass, when it exists
    """
    command = ["npx", "@biomejs/biome", action]
    if config_path is not None:
        command.append(f"--config-path={config_path}")
    if action == "format":
        command.append("--write")
    return command + list(paths)


def run_biome(
    action: str,
    paths: List[str],
    config_path: Optional[str] = None,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> str:
    root = find_biome_root(paths[0]) if paths else Path.cwd()
    config = Path(config_path) if config_path else root / "biome.json"
    command = build_biome_command(action, paths, config if config.exists() else None)

    debug = [
        f"Project root: {root}",
        f"Current working directory: {Path.cwd()}",
        f"First file path: {paths[0] if paths else 'N/A'}",
        f"Config file path: {config}",
        f"Config file exists: {config.exists()}",
        "Target files:",
        *[f"  - {Path(p).resolve()} (exists: {Path(p).exists()})" for p in paths],
        f"Command: {' '.join(command)}",
    ]

    logger.info(f"Running biome {action} on {len(paths)} path(s) in {root}")
    try:
        completed = runner(
            command,
            cwd=root,
            env={**os.environ, "TMPDIR": str(root / "tmp")},
            capture_output=True,
            text=True,
            timeout=BIOME_TIMEOUT_SECONDS,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        logger.warning(f"biome {action} exited with {e.returncode}")
        return "\n".join([
            f"=== BIOME {action.upper()} ERROR DEBUG INFO ===",
            *debug,
            "",
            "=== ERROR DETAILS ===",
            f"Exit code: {e.returncode}",
            f"Stdout: {e.stdout}",
            f"Stderr: {e.stderr}",
        ])
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"biome {action} could not run: {e}")
        return "\n".join([
            f"=== BIOME {action.upper()} ERROR DEBUG INFO ===",
            *debug,
            "",
            "=== ERROR DETAILS ===",
            f"Error type: {type(e).__name__}",
            f"Error message: {e}",
        ])

    output = completed.stdout or completed.stderr
    if not output and action == "format":
        output = "Files formatted successfully"
    return output


def register_biome_tools(server: FastMCP) -> None:
    @server.tool(name="biome-lint", description="Run Biome linting on files")
    def biome_lint(paths: List[str], configPath: Optional[str] = None) -> str:
        return run_biome("lint", paths, configPath)

    @server.tool(name="biome-format", description="Run Biome formatting on files")
    def biome_format(paths: List[str], configPath: Optional[str] = None) -> str:
        return run_biome("format", paths, configPath)
