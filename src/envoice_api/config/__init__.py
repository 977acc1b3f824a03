"""
API configuration package.
Contains settings and configuration management.
"""

from envoice_api.config.settings import ApiSettings, settings

__all__ = [
    "ApiSettings",
    "settings",
]
