"""
Custom exception classes for the Aashiyana API.
Each carries the HTTP status code and a stable error code for the envelope.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class ValidationError(APIException):
    """Input rejected by validation; lists every offending field."""

    def __init__(
        self,
        detail: str = "Validation failed",
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Resource not found exception."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )


class UnauthorizedError(APIException):
    """Authentication required exception."""

    def __init__(self, detail: str = "Not authorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(APIException):
    """Access forbidden exception."""

    def __init__(self, detail: str = "Access forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class BadRequestError(APIException):
    """Bad request exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST"
        )


# Authentication specific exceptions
class MissingTokenError(UnauthorizedError):
    """No bearer token on a protected route."""

    def __init__(self, detail: str = "Not authorized, no token provided"):
        super().__init__(detail)


class InvalidCredentialsError(UnauthorizedError):
    """Invalid login credentials exception."""

    def __init__(self, detail: str = "Invalid phone number or password"):
        super().__init__(detail)


class TokenExpiredError(UnauthorizedError):
    """Identity token expired exception."""

    def __init__(self, detail: str = "Your session has expired. Please sign in again."):
        super().__init__(detail)


class InvalidTokenError(UnauthorizedError):
    """Identity token rejected by the verifier."""

    def __init__(self, detail: str = "Invalid authentication token. Please sign in again."):
        super().__init__(detail)


class UnknownUserError(UnauthorizedError):
    """Verified token whose subject has no account."""

    def __init__(self, detail: str = "Not authorized, user not found"):
        super().__init__(detail)


class InactiveUserError(ForbiddenError):
    """Inactive user account exception."""

    def __init__(self, detail: str = "User account is inactive"):
        super().__init__(detail)


class UserNotFoundError(NotFoundError):
    """User not found exception."""

    def __init__(self, user_id: Optional[str] = None):
        super().__init__("User", user_id)


# Property specific exceptions
class PropertyNotFoundError(NotFoundError):
    """Property not found exception."""

    def __init__(self, property_id: Optional[str] = None):
        super().__init__("Property", property_id)


class PropertyOwnershipError(UnauthorizedError):
    """Caller is authenticated but does not own the listing."""

    def __init__(self, action: str = "modify"):
        super().__init__(f"Not authorized to {action} this property")
        self.error_code = "NOT_OWNER"


class PropertyStatusError(BadRequestError):
    """Operation not allowed in the listing's current status."""

    def __init__(self, detail: str):
        super().__init__(detail)


class ImageNotFoundError(NotFoundError):
    """Image not attached to the addressed property."""

    def __init__(self, image_id: Optional[str] = None):
        super().__init__("Image", image_id)


# File upload exceptions
class FileUploadError(BadRequestError):
    """File upload error exception."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.error_code = "FILE_UPLOAD_ERROR"


class UnsupportedFileTypeError(FileUploadError):
    """Non-image part in an image upload."""

    def __init__(self, file_type: Optional[str] = None):
        super().__init__("Not an image! Please upload only images.")
        self.file_type = file_type


class FileSizeExceededError(FileUploadError):
    """File size exceeded exception."""

    def __init__(self, size: int, max_size: int):
        super().__init__(f"File size {size} bytes exceeds maximum allowed size {max_size} bytes")


class TooManyFilesError(FileUploadError):
    """More files than one request may carry."""

    def __init__(self, count: int, limit: int):
        super().__init__(f"Too many files: {count} uploaded, at most {limit} allowed")


class RequestTooLargeError(BadRequestError):
    """Request body over the configured cap."""

    def __init__(self, size: int, max_size: int):
        super().__init__(f"Request size {size} bytes exceeds maximum allowed size {max_size} bytes")
        self.error_code = "REQUEST_TOO_LARGE"
