"""
MCP tool servers for working on the CRM codebase.

- server.py       : configurable server (crm-mcp-server)
- local_server.py : fixed local server with bundled docs (crm-mcp-local)
- config.py       : project root detection and .mcp-config.json loading
- tools/          : tool implementations and their registration
"""
