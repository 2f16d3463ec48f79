from pydantic import BaseModel, Field
from typing import Optional, Any, List, Generic, TypeVar

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class MutationResponse(BaseModel, Generic[T]):
    """
    Result of a committed mutation.

    `warnings` lists non-fatal upstream failures (notification delivery, etc.)
    that happened after the change was already saved.
    """
    data: T
    warnings: List[str] = Field(default_factory=list)

