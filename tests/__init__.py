"""
Tile server test suite

Structure:
- unit/: tile math, window resolution, compositing, encoding, adapters
- integration/: full pipeline over real GeoTIFFs and the HTTP app
"""
