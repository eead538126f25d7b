"""
HTTP error contract.

Clients of the original service parse ``{"error": ..., "details": ...}``
bodies, so failures are raised as :class:`DocumentRequestError` and
rendered by :func:`document_request_error_handler` rather than through
FastAPI's ``{"detail": ...}`` shape.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import ORJSONResponse


class DocumentRequestError(Exception):
    def __init__(
        self,
        status_code: int,
        error: str,
        details: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.headers = headers or {}

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            content["details"] = self.details
        return content


async def document_request_error_handler(
    request: Request, exc: DocumentRequestError
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
        headers=exc.headers,
    )
