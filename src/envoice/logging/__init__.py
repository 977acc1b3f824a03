"""
Logging helpers for the envoice package.
"""

from envoice.logging.setup import (
    clear_run_id,
    configure_logging,
    get_run_id,
    set_run_id,
)

configure_logging()

__all__ = [
    "configure_logging",
    "set_run_id",
    "clear_run_id",
    "get_run_id",
]
