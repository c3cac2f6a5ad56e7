from fastapi import HTTPException

from invoicer.services.exceptions import InvalidScheduleState, NotFoundError, ServiceError


def to_http_error(exc: ServiceError) -> HTTPException:
    """Map a service failure onto the HTTP status the tools API reports."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidScheduleState):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))
