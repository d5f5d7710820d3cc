from rest_framework import status
from rest_framework.exceptions import APIException


class AuthorizationError(APIException):
    """Base class for policy denials. Client messages stay generic."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied."
    default_code = "authorization_error"

    def __init__(self, detail=None, code=None, requirement=None):
        super().__init__(detail, code)
        # Diagnostics only, never rendered to the client
        self.requirement = requirement


class Unauthenticated(AuthorizationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication credentials were not provided or are invalid."
    default_code = "not_authenticated"


class Forbidden(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action."
    default_code = "permission_denied"
