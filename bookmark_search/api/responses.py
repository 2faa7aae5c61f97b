"""
Shared response helpers for API routes.
"""

from fastapi.responses import JSONResponse


def error_response(error: object, status_code: int = 500, **extra) -> JSONResponse:
    """Build a JSON error body of the form ``{"error": "..."}``."""
    return JSONResponse(status_code=status_code, content={**extra, "error": str(error)})
