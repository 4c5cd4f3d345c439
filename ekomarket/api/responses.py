"""Result -> HTTP response mapping"""

import logging
from typing import Any, Optional

from fastapi import status
from fastapi.responses import JSONResponse
from kungfu import Error, Ok, Result
from pydantic import BaseModel

from ..domain.errors import DomainError, ErrorKind


logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.UPSTREAM_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

STATUS_BY_CODE = {
    # Rejected deliveries are the sender's problem, not an outage
    "INVALID_SIGNATURE": status.HTTP_400_BAD_REQUEST,
    "INVALID_PAYLOAD": status.HTTP_400_BAD_REQUEST,
    "GATEWAY_TIMEOUT": status.HTTP_504_GATEWAY_TIMEOUT,
}


def status_for(error: DomainError) -> int:
    return STATUS_BY_CODE.get(error.code, STATUS_BY_KIND[error.kind])


def envelope(success: bool, data: Any = None, error: Optional[str] = None, code: Optional[str] = None) -> dict:
    body = {"success": success}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    if code is not None:
        body["code"] = code
    return body


def error_response(status_code: int, message: str, code: Optional[str] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(False, error=message, code=code))


def respond(result: Result[Any, DomainError], success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Render a use case result inside the response envelope"""
    match result:
        case Ok(data):
            if isinstance(data, BaseModel):
                data = data.model_dump(mode="json", by_alias=True)
            return JSONResponse(status_code=success_status, content=envelope(True, data=data))
        case Error(error):
            if error.kind == ErrorKind.INTERNAL:
                logger.error("Internal error: %s %s", error.code, error.details)
            return error_response(status_for(error), error.message, error.code)
