#!/usr/bin/env python3
"""
Async Hazard MCP Server using chuk-mcp-server

Samples polygons against tiled hazard overlays (tsunami, flood, ...) and
resolves point elevations from DEM PNG tiles. Tiles are fetched over HTTP
and held in a bounded in-memory cache shared by every tool.

Storage is managed through chuk-mcp-server's built-in artifact store context.
"""

import logging

from chuk_mcp_server import ChukMCPServer

from .constants import ServerConfig
from .core.hazard_manager import HazardManager
from .tools.analysis import register_analysis_tools
from .tools.discovery import register_discovery_tools
from .tools.elevation import register_elevation_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer(ServerConfig.NAME)

# Cache and fetch limits come from HAZARD_* environment variables
manager = HazardManager.from_env()

# Register all tool modules
register_discovery_tools(mcp, manager)
register_analysis_tools(mcp, manager)
register_elevation_tools(mcp, manager)

# Run the server
if __name__ == "__main__":
    logger.info("Starting Hazard MCP Server...")
    logger.info("Storage: Using chuk-mcp-server artifact store context")
    mcp.run(stdio=True)
