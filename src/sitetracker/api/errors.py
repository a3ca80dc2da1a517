"""Translate classified failures into RFC 9457 problem-details exceptions."""

from typing import Dict, Optional, Tuple, Type

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..core.errors import (
    AlreadyExists,
    InvalidRegistration,
    InvalidURL,
    NotFound,
    SiteTrackerError,
    StorageFailure,
    Unauthenticated,
)

STORAGE_RETRY_AFTER_SECONDS = 1


class ProblemDetailsException(HTTPException):
    """HTTPException that carries RFC 9457 Problem Details."""

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **extra_fields,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.title = title
        self.type_uri = type_uri or f"https://httpstatuses.com/{status_code}"
        self.instance = instance
        self.extra_fields = extra_fields

    def to_dict(self) -> dict:
        body = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if self.instance:
            body["instance"] = self.instance
        body.update(self.extra_fields)
        return body


# Most specific first: InvalidURL is an InvalidRegistration
_STATUS_MAP: Tuple[Tuple[Type[SiteTrackerError], int, str], ...] = (
    (Unauthenticated, status.HTTP_401_UNAUTHORIZED, "Not Authorized"),
    (InvalidURL, status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid URL"),
    (InvalidRegistration, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error"),
    (AlreadyExists, status.HTTP_409_CONFLICT, "Site Already Exists"),
    (NotFound, status.HTTP_404_NOT_FOUND, "Not Found"),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable"),
)


def problem_from_error(exc: SiteTrackerError) -> ProblemDetailsException:
    """Map a classified failure to the problem-details exception a client sees."""
    for error_type, status_code, title in _STATUS_MAP:
        if isinstance(exc, error_type):
            break
    else:
        status_code, title = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"

    headers = None
    extra = {"code": exc.code}

    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, StorageFailure):
        headers = {"Retry-After": str(STORAGE_RETRY_AFTER_SECONDS)}
        # Backend details stay in the logs
        return ProblemDetailsException(
            status_code=status_code,
            title=title,
            detail="Storage is temporarily unavailable, retry the request",
            headers=headers,
            **extra,
        )
    elif isinstance(exc, InvalidRegistration) and exc.errors:
        extra["errors"] = exc.errors

    return ProblemDetailsException(
        status_code=status_code,
        title=title,
        detail=exc.message,
        headers=headers,
        **extra,
    )


async def _problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    body = exc.to_dict()
    body.setdefault("instance", str(request.url))
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(body),
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def _site_tracker_error_handler(request: Request, exc: SiteTrackerError) -> JSONResponse:
    return await _problem_details_handler(request, problem_from_error(exc))


def install_problem_handlers(app: FastAPI) -> None:
    """Render classified failures raised by handlers or dependencies as problem details."""
    app.add_exception_handler(ProblemDetailsException, _problem_details_handler)
    app.add_exception_handler(SiteTrackerError, _site_tracker_error_handler)
