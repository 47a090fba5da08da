"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error detail."""

    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error response format.

    Format: { "error": { "code": str, "message": str, "detail": object } }

    Codes: INVALID_ARGUMENT (400), STORE_UNAVAILABLE (503), INTERNAL_ERROR (500).
    """

    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: dict[str, Any] | None = None) -> dict[str, Any]:
        """Serialized envelope ready for a JSONResponse body."""
        return cls(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump()
