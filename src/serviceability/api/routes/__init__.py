"""Route group exports."""

from . import charges, health, pincodes, sources

__all__ = ["pincodes", "charges", "sources", "health"]
