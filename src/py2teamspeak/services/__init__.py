"""
Service layer for py2teamspeak.
"""

from .configuration_service import ConfigurationService

__all__ = ['ConfigurationService']
