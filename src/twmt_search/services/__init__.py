"""Search execution, history and the outcome-returning facade."""
from twmt_search.services.search_executor import SearchExecutor
from twmt_search.services.search_history import SearchHistoryManager
from twmt_search.services.search_service import SearchService

__all__ = [
    "SearchExecutor",
    "SearchHistoryManager",
    "SearchService",
]
