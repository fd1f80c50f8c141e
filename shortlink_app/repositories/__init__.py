from .url_repository import URLRepository
from .history_repository import HistoryRepository

__all__ = ["URLRepository", "HistoryRepository"]
