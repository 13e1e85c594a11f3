"""Agent Provisioning service"""

__version__ = "1.0.0"
