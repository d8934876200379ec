from .people import router as people_router
from .offers import router as offers_router
from .transactions import router as transactions_router
from .merchants import router as merchants_router
from .insights import router as insights_router

__all__ = [
    "people_router",
    "offers_router",
    "transactions_router",
    "merchants_router",
    "insights_router",
]
