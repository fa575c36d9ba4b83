"""
Shared service error base

Every typed business error raised by a service carries a stable
error_code and the HTTP status the API layer maps it to.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    """Base for typed service errors"""

    error_code: str = "SERVICE_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "error_code": self.error_code,
            "retryable": self.retryable,
            "details": self.details,
        }


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """FastAPI exception handler for ServiceError subclasses"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
