"""
Base models shared across the photo and rate limiting APIs.
"""
from pydantic import BaseModel, Field


class BaseMetrics(BaseModel):
    """Base class for performance and resource metrics"""
    cpu_usage: float = Field(..., description="CPU usage during operation (%)")
    memory_usage: float = Field(..., description="Memory usage during operation (%)")


class ErrorResponse(BaseModel):
    """Error body returned by the API"""
    detail: str = Field(..., description="Human readable error message")
