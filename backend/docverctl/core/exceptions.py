"""
API error taxonomy

Every error a route raises on purpose is an ApiError. The handler in
main.py renders it as {"error": message, "details": details}.
"""
from typing import Any, Optional
from fastapi import HTTPException, status


class ApiError(HTTPException):
    """HTTP error with a short message and optional structured details"""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details


class UnauthorizedError(ApiError):
    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, details)
        self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(ApiError):
    def __init__(self, message: str = "Forbidden", details: Optional[Any] = None):
        super().__init__(status.HTTP_403_FORBIDDEN, message, details)


class NotFoundError(ApiError):
    def __init__(self, message: str = "Not found", details: Optional[Any] = None):
        super().__init__(status.HTTP_404_NOT_FOUND, message, details)


class RepositoryNotFoundError(NotFoundError):
    """The project's repository is gone upstream, the client may offer a purge"""

    CODE = "REPO_NOT_FOUND_ON_GITHUB"

    def __init__(self, project_id: str):
        super().__init__(
            "Repository not found on GitHub.",
            {"code": self.CODE, "project_id": project_id}
        )


class ConflictError(ApiError):
    def __init__(self, message: str = "Conflict", details: Optional[Any] = None):
        super().__init__(status.HTTP_409_CONFLICT, message, details)


class ValidationFailedError(ApiError):
    def __init__(self, message: str = "Validation failed", details: Optional[Any] = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, details)


class UpstreamError(ApiError):
    def __init__(self, message: str = "Upstream service failed", details: Optional[Any] = None):
        super().__init__(status.HTTP_502_BAD_GATEWAY, message, details)
