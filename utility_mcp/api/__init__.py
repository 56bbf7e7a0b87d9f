# utility_mcp/api/__init__.py

from utility_mcp.api import mcp

__all__ = [
    "mcp",
]
