# ================================
# BASE SCHEMAS (schemas/base.py)
# ================================

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID

class BaseSchema(BaseModel):
    """Base Schema mit gemeinsamer Konfiguration"""
    model_config = ConfigDict(
        from_attributes=True,  # Pydantic v2: ermöglicht ORM integration
        str_strip_whitespace=True,
        validate_assignment=True,
    )

class BaseResponseSchema(BaseSchema):
    """Base Schema for API responses with ID field"""
    id: UUID

class ErrorResponse(BaseSchema):
    """Standard Error Response Schema"""
    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Application-specific error code")
    request_id: Optional[str] = Field(None, description="Request correlation id")
    retryable: Optional[bool] = Field(None, description="Set when the request may be retried unchanged")

class SuccessResponse(BaseSchema):
    """Standard Success Response Schema"""
    message: str = Field(..., description="Success message")
