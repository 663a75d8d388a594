"""
Repositories - 数据访问层
"""

from stockdesk.repositories.credential_repository import CredentialRepository
from stockdesk.repositories.watchlist_repository import WatchlistRepository, normalize_ticker

__all__ = ["CredentialRepository", "WatchlistRepository", "normalize_ticker"]
