"""
MCP tools.

- ask.py      : ask
- get_date.py : getDate
- get_docs.py : getDocs
- biome.py    : biome-lint, biome-format
"""
from crm_mcp.tools.ask import register_ask_tool
from crm_mcp.tools.biome import register_biome_tools
from crm_mcp.tools.get_date import register_get_date_tool
from crm_mcp.tools.get_docs import register_get_docs_tool

__all__ = [
    "register_ask_tool",
    "register_biome_tools",
    "register_get_date_tool",
    "register_get_docs_tool",
]
