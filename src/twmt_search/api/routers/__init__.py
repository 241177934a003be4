"""API routers for different endpoint groups."""
from twmt_search.api.routers.search import router as search_router
from twmt_search.api.routers.history import router as history_router
from twmt_search.api.routers.saved_searches import router as saved_searches_router
from twmt_search.api.routers.stats import router as stats_router

__all__ = [
    "search_router",
    "history_router",
    "saved_searches_router",
    "stats_router",
]
