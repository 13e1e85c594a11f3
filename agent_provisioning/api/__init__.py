"""API module"""

from .routes import agents, health

__all__ = ["agents", "health"]
