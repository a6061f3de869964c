"""Error body shared by every non-2xx response raised from the domain."""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"detail": "Request is no longer pending", "code": "INVALID_STATE"}
        }
    )

    detail: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code, stable across releases")
