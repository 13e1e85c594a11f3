"""API Routes"""

from . import agents, health

__all__ = ["agents", "health"]
