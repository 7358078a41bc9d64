"""Core utilities for configuration, logging and the Firestore client."""

from .config import AppSettings, load_settings
from .firebase_client_manager import FirebaseClientManager
from .logging_config import get_logger, setup_logging

__all__ = [
    "AppSettings",
    "load_settings",
    "FirebaseClientManager",
    "get_logger",
    "setup_logging",
]
