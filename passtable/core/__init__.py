"""
Core module - Contains configuration, logging, crypto and the vault store.
"""

from passtable.core.config import PasstableConfig
from passtable.core.logging import configure_logging, get_secure_logger, SecureLogFilter

__all__ = ["PasstableConfig", "configure_logging", "get_secure_logger", "SecureLogFilter"]
