"""
Utility for classifying errors as retryable or not using specific exception types.
"""

import requests

from envoice.exceptions import InfrastructureException


def is_retryable_error(error_input: Exception) -> bool:
    """
    Check if an exception indicates a retryable error based on its type.

    Args:
        error_input: Exception object to check

    Returns:
        bool: True if error is retryable, False otherwise
    """
    if isinstance(error_input, InfrastructureException):
        return True

    retryable_types = (
        TimeoutError,
        ConnectionRefusedError,
        ConnectionAbortedError,
        ConnectionResetError,
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
    )

    return isinstance(error_input, retryable_types)
