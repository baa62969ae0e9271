"""
ecomap_server.domain

Domain types and errors shared by the store, service and API layers.
"""

# Package marker; import from submodules.
