"""Route group exports."""

from . import health, navigation, routes

__all__ = ["health", "navigation", "routes"]
