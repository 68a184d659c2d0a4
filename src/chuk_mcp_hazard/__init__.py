"""
chuk-mcp-hazard: Hazard Map & Elevation Tile Sampling MCP Server

Samples a polygon against tiled hazard overlays (flood, tsunami, ...),
classifies each sample point by overlay colour, and summarises the
risk levels. Also resolves point elevations from GSI-style DEM PNG tiles.
"""
