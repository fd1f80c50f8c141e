"""
Database models for the shortlink service.

Importing this package registers both tables on Base.metadata.
"""

from .url import ShortURL, UrlStatus
from .history import AccessHistory

__all__ = ["ShortURL", "UrlStatus", "AccessHistory"]
