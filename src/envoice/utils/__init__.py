"""
Utility helpers for the envoice package.
"""

from envoice.utils.error_classifier import is_retryable_error

__all__ = ["is_retryable_error"]
