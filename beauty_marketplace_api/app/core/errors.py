"""
Translation of service-layer exceptions into HTTP errors.

Services raise ``ValueError`` for missing objects (message containing
"not found") and rule violations, and ``PermissionError`` when the
acting user may not perform the operation.
"""

from fastapi import HTTPException, status


def http_error(exc: Exception) -> HTTPException:
    """Map a service exception to the matching ``HTTPException``."""
    detail = str(exc)
    if isinstance(exc, PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail or "Insufficient permissions")
    if "not found" in detail:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
