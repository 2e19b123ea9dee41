"""
Local MCP tool server (crm-mcp-local).

Fixed identity "local-mcp" v1.0.0. getDate answers in JST and getDocs reads
the documents shipped inside this package.
"""
import sys
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from crm.core.logging_config import get_logger, setup_logging
from crm_mcp.tools import register_ask_tool, register_get_date_tool, register_get_docs_tool
from crm_mcp.tools.get_date import JST

logger = get_logger(__name__)

SERVER_NAME = "local-mcp"
SERVER_VERSION = "1.0.0"
BUNDLED_DOCS_DIR = Path(__file__).resolve().parent / "docs"
LOCAL_DATE_FORMAT = "yyyy/MM/dd HH:mm:ss"


def build_local_server() -> FastMCP:
    server = FastMCP(SERVER_NAME)
    register_get_date_tool(server, tz=JST, default_format=LOCAL_DATE_FORMAT)
    register_get_docs_tool(server, BUNDLED_DOCS_DIR)
    register_ask_tool(server)
    logger.info(f"{SERVER_NAME} v{SERVER_VERSION} ready (docs: {BUNDLED_DOCS_DIR})")
    return server


def main() -> None:
    """Entry point for crm-mcp-local."""
    setup_logging("INFO", log_to_file=False, stream=sys.stderr)
    build_local_server().run()


if __name__ == "__main__":
    main()
