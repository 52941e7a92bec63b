"""MCP server package"""

from rss_reader.server.app import create_mcp_server, run_server

__all__ = ["create_mcp_server", "run_server"]
