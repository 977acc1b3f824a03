"""
Pipeline configuration package.
"""

from envoice.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
