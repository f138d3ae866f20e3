"""Logging module with structured logging and request tracking."""

from shipdesk.core.logging.middleware import RequestLoggingMiddleware, get_client_ip
from shipdesk.core.logging.setup import configure_logging


__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_client_ip",
]
