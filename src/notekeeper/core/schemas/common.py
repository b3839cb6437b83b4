"""
Shared response schemas - pagination, errors etc
"""

from datetime import datetime, timezone
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginationResponse(BaseModel, Generic[T]):
    """Pagination wrapper for API responses"""

    items: List[T]
    total: int
    page: int
    per_page: int
    pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def create(cls, items: List[T], total: int, page: int, per_page: int) -> "PaginationResponse[T]":
        # calculate page info
        pages = (total + per_page - 1) // per_page if per_page else 0

        return cls(
            items=items,
            total=total,
            page=page,
            per_page=per_page,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )


class ErrorResponse(BaseModel):
    """Error body rendered from NoteKeeperError.to_dict()."""

    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Machine readable error code")
    retryable: bool = Field(default=False, description="Whether retrying the same request may succeed")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "error": "Note not found",
                "code": "not_found",
                "retryable": False,
                "resource": "note",
                "resource_id": "123e4567-e89b-12d3-a456-426614174000",
            }
        },
    )


class MessageResponse(BaseModel):
    message: str


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(description="Application version")
    checks: dict[str, dict[str, Any]] = Field(description="Individual component health checks")
    message: Optional[str] = None
