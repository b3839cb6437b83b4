"""Domain exceptions for NoteKeeper.

Every error carries an HTTP status, a machine readable code and a
``details`` mapping; ``to_dict`` renders the JSON body returned to clients.
Conflict details sit at the top level of that body so a client can build a
merge view without another request.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID


class NoteKeeperError(Exception):
    """Base exception for all NoteKeeper errors."""

    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a JSON-serializable dictionary."""
        body: Dict[str, Any] = {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }
        body.update(self.details)
        return body

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code}] {self.message} ({detail_str})"
        return f"[{self.code}] {self.message}"


class NotFoundError(NoteKeeperError):
    """Resource does not exist or the caller cannot see it."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, resource_id: Any = None, message: Optional[str] = None):
        details = {"resource": resource}
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(message or f"{resource.capitalize()} not found", details)


class ForbiddenError(NoteKeeperError):
    status_code = 403
    code = "forbidden"


class AuthenticationError(NoteKeeperError):
    status_code = 401
    code = "unauthorized"


class ValidationError(NoteKeeperError):
    """Malformed input rejected before it reaches the storage layer."""

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class DuplicateResourceError(NoteKeeperError):
    status_code = 409
    code = "duplicate"


class VersionConflictError(NoteKeeperError):
    """Expected version did not match the stored version; nothing was written."""

    status_code = 409
    code = "version_conflict"


class UpdateConflictError(VersionConflictError):
    """Stale update, carrying the current server state for a three-way merge."""

    def __init__(
        self,
        note_id: UUID,
        client_version: int,
        server_version: int,
        server_title: str,
        server_content: str,
        server_updated_at: Optional[datetime],
        last_modified_by: Optional[UUID],
    ):
        self.note_id = note_id
        self.client_version = client_version
        self.server_version = server_version
        self.server_title = server_title
        self.server_content = server_content
        self.server_updated_at = server_updated_at
        self.last_modified_by = last_modified_by
        super().__init__(
            "Conflict detected: note has been modified since you last fetched it",
            {
                "client_version": client_version,
                "server_version": server_version,
                "server_data": {
                    "title": server_title,
                    "content": server_content,
                    "updated_at": server_updated_at.isoformat() if server_updated_at else None,
                },
                "last_modified_by": str(last_modified_by) if last_modified_by else None,
                "resolution_endpoint": f"/api/notes/{note_id}/resolve-conflict",
            },
        )


class DeleteConflictError(VersionConflictError):
    def __init__(self, client_version: int, server_version: int):
        self.client_version = client_version
        self.server_version = server_version
        super().__init__(
            "Conflict detected: note has been modified. Please refresh and try again",
            {"client_version": client_version, "server_version": server_version},
        )


class ResolutionConflictError(VersionConflictError):
    """The note moved again after the conflict being resolved was reported."""

    def __init__(self, current_version: int, attempted_resolution_version: int):
        self.current_version = current_version
        self.attempted_resolution_version = attempted_resolution_version
        super().__init__(
            "Server version has changed again while attempting to resolve conflict",
            {
                "current_version": current_version,
                "attempted_resolution_version": attempted_resolution_version,
            },
        )


class StorageFailureError(NoteKeeperError):
    """Lock timeout, aborted transaction or lost connection. Nothing was committed."""

    status_code = 503
    code = "storage_failure"
    retryable = True

    def __init__(self, message: str = "Storage temporarily unavailable, please retry", cause: Optional[BaseException] = None):
        details = {"cause": type(cause).__name__} if cause is not None else None
        super().__init__(message, details)
