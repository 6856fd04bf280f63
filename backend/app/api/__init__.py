"""API package exports."""
from . import routes_admin, routes_assets, routes_index

__all__ = [
    "routes_admin",
    "routes_assets",
    "routes_index",
]
