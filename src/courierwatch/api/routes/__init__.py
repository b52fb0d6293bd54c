"""Route group exports."""

from . import console, eta, geo, health, routes

__all__ = ["console", "eta", "geo", "health", "routes"]
