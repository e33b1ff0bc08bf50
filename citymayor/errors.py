from fastapi import HTTPException, status


class GameError(Exception):
    """Base class of every error the game services raise."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotAuthenticated(GameError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotAuthorized(GameError):
    status_code = status.HTTP_403_FORBIDDEN


class InsufficientFunds(GameError):
    status_code = status.HTTP_409_CONFLICT


class OutOfBounds(GameError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Occupied(GameError):
    status_code = status.HTTP_409_CONFLICT


class NotFound(GameError):
    status_code = status.HTTP_404_NOT_FOUND


class BuildingInUse(GameError):
    status_code = status.HTTP_409_CONFLICT


class BackendUnavailable(GameError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def to_http_exception(error: GameError) -> HTTPException:
    """Convert a game error to the HTTPException returned to the client

    Args:
        error (GameError): Error raised by the service layer

    Returns:
        HTTPException: Exception carrying the status code and message of the error
    """
    headers = None
    if isinstance(error, NotAuthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(status_code=error.status_code, detail=error.detail, headers=headers)
