"""API routers for NoteKeeper."""

from .auth import router as auth_router
from .health import router as health_router
from .notes import router as notes_router
from .search import router as search_router
from .sharing import router as sharing_router
from .users import router as users_router

__all__ = ["auth_router", "users_router", "notes_router", "search_router", "sharing_router", "health_router"]
