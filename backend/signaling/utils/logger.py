"""Logging helpers that keep opaque signaling payloads out of the logs."""
import logging
import sys
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Configure stdout/stderr for UTF-8 on Windows
if sys.platform == 'win32':
    try:
        if hasattr(sys.stdout, 'reconfigure'):
            sys.stdout.reconfigure(encoding='utf-8', errors='replace')
        if hasattr(sys.stderr, 'reconfigure'):
            sys.stderr.reconfigure(encoding='utf-8', errors='replace')
    except (OSError, ValueError):
        pass


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once; later calls only adjust the level."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def describe_payload(payload: Optional[str]) -> str:
    """
    Summarize an opaque payload for log lines.
    SDP and ICE blobs can be large and carry network addresses, so only the size is logged.
    """
    if payload is None:
        return "<none>"
    return f"<{len(payload)} chars>"


def safe_repr(obj: Any) -> str:
    """
    Safe representation function that handles Unicode characters.
    """
    try:
        return repr(obj)
    except (UnicodeEncodeError, UnicodeDecodeError):
        try:
            return str(obj).encode('ascii', errors='replace').decode('ascii')
        except (UnicodeEncodeError, UnicodeDecodeError):
            return "<Unable to represent object>"
