"""
Service layer: interfaces, implementations and the note concurrency controller.
"""

from .interfaces import IAuthService, IHealthService, INoteService, ISearchService, ISharingService, IUserService

from .auth_service import AuthService
from .concurrency_controller import NoteConcurrencyController
from .health_service import HealthService
from .note_service import NoteService
from .search_service import SearchService
from .sharing_service import SharingService
from .user_service import UserService
from .unit_of_work import atomic_write, storage_guard

__all__ = [
    # Interfaces
    "IAuthService",
    "INoteService",
    "ISearchService",
    "ISharingService",
    "IHealthService",
    "IUserService",
    # Implementations
    "AuthService",
    "NoteService",
    "SearchService",
    "SharingService",
    "HealthService",
    "UserService",
    "NoteConcurrencyController",
    "atomic_write",
    "storage_guard",
]
