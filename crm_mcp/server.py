"""
Configurable MCP tool server (crm-mcp-server).

Name and version come from .mcp-config.json. ask and getDate are always
registered; biome-lint/biome-format and getDocs follow the feature flags.
Runs over stdio, so logs go to stderr.
"""
import sys
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from crm.core.logging_config import get_logger, setup_logging
from crm_mcp.config import docs_path, find_project_root, load_config, path_report
from crm_mcp.tools import (
    register_ask_tool,
    register_biome_tools,
    register_get_date_tool,
    register_get_docs_tool,
)
from crm_mcp.tools.get_date import resolve_timezone

logger = get_logger(__name__)


def configured_timezone(name: Optional[str]) -> tzinfo:
    """Configured zone for getDate; UTC when the name is unknown."""
    try:
        return resolve_timezone(name)
    except ToolError:
        logger.warning(f"Unknown timezone in config: {name}, using UTC")
        return timezone.utc


def build_server(
    config: Optional[Dict[str, Any]] = None,
    project_root: Optional[Path] = None,
) -> FastMCP:
    """Create the server and register the tools enabled in config."""
    root = project_root or find_project_root()
    config = config or load_config(root)
    server_info = config["server"]

    server = FastMCP(server_info["name"], instructions=server_info.get("description"))

    register_ask_tool(server)
    register_get_date_tool(server, tz=configured_timezone(config.get("timezone")))

    features = config["features"]
    if features.get("biome"):
        register_biome_tools(server)
    if features.get("docs"):
        register_get_docs_tool(
            server,
            docs_path(config, root),
            report=lambda: path_report(config, root),
        )

    enabled = ", ".join(name for name, on in features.items() if on) or "none"
    logger.info(f"{server_info['name']} v{server_info['version']} ready (features: {enabled})")
    return server


def main() -> None:
    """Entry point for crm-mcp-server."""
    setup_logging("INFO", log_to_file=False, stream=sys.stderr)
    build_server().run()


if __name__ == "__main__":
    main()
