"""Map rating errors to HTTP responses."""

from fastapi import HTTPException, status

from ers.errors import (
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    RatingError,
    RatingValidationError,
)

STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (RatingValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def http_error(exc: RatingError) -> HTTPException:
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
