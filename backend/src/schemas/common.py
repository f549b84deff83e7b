"""
Response envelope shared by every JSON endpoint.

Success: {"success": true, "data": ..., "message": ...}
Lists add "count". Failures are shaped by the exception handlers in
main.py as {"success": false, "error": ..., "message": ...}.
"""

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for a single resource."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ApiListResponse(BaseModel, Generic[T]):
    """Envelope for a list of resources."""

    success: bool = True
    data: List[T] = Field(default_factory=list)
    count: int = 0
    message: Optional[str] = None

    @classmethod
    def of(cls, items: List[Any], message: Optional[str] = None) -> "ApiListResponse":
        return cls(data=items, count=len(items), message=message)


class ErrorResponse(BaseModel):
    """Envelope for failures (documentation only; handlers build it directly)."""

    success: bool = False
    error: str = Field(..., description="Short error category")
    message: str = Field(..., description="Human-readable explanation")
    errors: Optional[List[dict]] = Field(default=None, description="Per-field validation errors")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "Validation error",
                "message": "End date/time must be after start date/time",
            }
        }
    }
