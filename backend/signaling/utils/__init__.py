"""Utility modules for the application."""
from signaling.utils.logger import (
    configure_logging,
    describe_payload,
    get_logger,
    safe_repr
)

__all__ = [
    'configure_logging',
    'describe_payload',
    'get_logger',
    'safe_repr'
]
