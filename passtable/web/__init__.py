"""
Web module - Local JSON API hosting one vault at a time.
"""

from passtable.web.app import create_app, main

__all__ = ["create_app", "main"]
