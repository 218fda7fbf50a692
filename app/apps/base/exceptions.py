"""HTTP exceptions and client facing error messages."""

from fastapi import HTTPException

NAME_REQUIRED = "name is required"
GUID_REQUIRED = "guid is required"
GUID_EXISTS = "guid already exists"
DOCUMENT_NOT_FOUND = "document not found"
NOT_ADMIN = "Unauthorized - not an admin user"
UNAUTHORIZED = "Unauthorized"
MISSING_GUIDS = "missing guids in query or body"
GUID_IN_BULK_PATH = "GUID in path is not allowed in bulk request"
NO_DOCUMENTS = "no documents in request"


def missing_key(key: str) -> str:
    return f"{key} is required"


def required_query_param(param: str) -> str:
    return f"{param} query param is required"


def rfc3339_param(param: str) -> str:
    return f"{param} must be in RFC3339 format"


def number_param(param: str) -> str:
    return f"{param} must be a number"


def values_exist(key: str, values: list[str]) -> str:
    """Message for unique values that are already taken."""
    if len(values) == 1:
        return f"{key} {values[0]} already exists"
    return f"{key}s {','.join(values)} already exist"


def duplicate_value(key: str, value: str) -> str:
    return f"duplicate {key} {value} in request"


class BaseHTTPException(HTTPException):
    """HTTP error whose body is ``{"error": detail}``."""

    def __init__(
        self,
        status_code: int,
        error: str,
        detail: str | None = None,
        **kwargs: object,
    ) -> None:
        self.error = error
        super().__init__(status_code=status_code, detail=detail or error, **kwargs)


class BadRequestException(BaseHTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, error="bad_request", detail=detail)


class UnauthorizedException(BaseHTTPException):
    def __init__(self, detail: str = UNAUTHORIZED) -> None:
        super().__init__(status_code=401, error="unauthorized", detail=detail)


class NotFoundException(BaseHTTPException):
    def __init__(self, detail: str = DOCUMENT_NOT_FOUND) -> None:
        super().__init__(status_code=404, error="not_found", detail=detail)


class ConflictException(BaseHTTPException):
    def __init__(self, detail: str = GUID_EXISTS) -> None:
        super().__init__(status_code=409, error="conflict", detail=detail)


class InternalException(BaseHTTPException):
    def __init__(self, detail: str = "internal server error") -> None:
        super().__init__(status_code=500, error="internal_error", detail=detail)
