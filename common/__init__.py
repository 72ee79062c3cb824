"""
Shared tile-scheme math, data model and logging used by the tile server.
"""
