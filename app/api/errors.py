from http import HTTPStatus

from fastapi import HTTPException

from app.core.errors import CalendarError, ConflictError, NotFoundError


def to_http_exception(exc: CalendarError) -> HTTPException:
    """
    Translate a calendar error into the HTTPException returned to clients.

    NotFoundError -> 404, ConflictError -> 409, anything else -> 400.
    """
    if isinstance(exc, NotFoundError):
        status_code = HTTPStatus.NOT_FOUND
    elif isinstance(exc, ConflictError):
        status_code = HTTPStatus.CONFLICT
    else:
        status_code = HTTPStatus.BAD_REQUEST
    return HTTPException(status_code=status_code, detail=str(exc))
