from fastapi import status


class DocChatError(Exception):
    """Base class for failures surfaced to the user that triggered them."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthFailure(DocChatError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid Credentials"):
        super().__init__(message)


class PermissionDenied(DocChatError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DocChatError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(DocChatError):
    status_code = status.HTTP_400_BAD_REQUEST


class IngestionError(DocChatError):
    status_code = 422


class ConfigurationError(DocChatError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ServiceError(DocChatError):
    status_code = status.HTTP_502_BAD_GATEWAY
