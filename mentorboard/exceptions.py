"""
Domain errors raised by services and rendered by the API layer.

Each error carries a user-facing message, a stable machine code and the HTTP
status it maps to. main.py turns them into {"error": message, "code": code}.
"""
from fastapi import status


class MentorBoardError(Exception):
    """Base class for expected, user-facing failures"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidRequestError(MentorBoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_REQUEST"


class AuthenticationError(MentorBoardError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"


class PermissionDeniedError(MentorBoardError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFoundError(MentorBoardError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(MentorBoardError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class NoActivePeriodError(MentorBoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "NO_ACTIVE_PERIOD"

    def __init__(self, message: str = "No active period found. Please activate a period first."):
        super().__init__(message)


class CapacityReachedError(ConflictError):
    code = "CAPACITY_REACHED"

    def __init__(self, message: str = "Event has reached maximum capacity"):
        super().__init__(message)


class TokenExpiredError(MentorBoardError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Invalid or expired QR code"):
        super().__init__(message)
