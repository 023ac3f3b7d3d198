import json
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


class InvalidRequest(HTTPException):
    def __init__(self):
        super().__init__(status_code=400, detail="invalid request")


class UnsupportedType(HTTPException):
    def __init__(self, activity_type: Any):
        self.activity_type = activity_type
        super().__init__(
            status_code=400,
            detail=f"unsupported type: {json.dumps(activity_type, ensure_ascii=False)}",
        )


class NotFound(HTTPException):
    def __init__(self):
        super().__init__(status_code=404, detail="not found")


class DeliveryFailed(HTTPException):
    """Relaying a reply activity to a remote server failed.

    The cause is kept on the exception for logging only; the remote caller
    sees a generic message.
    """

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(status_code=500, detail="internal server error")


async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail
    if exc.status_code == 404 and detail == "Not Found":
        detail = "not found"
    elif exc.status_code == 405:
        detail = "method not allowed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": detail},
        headers=getattr(exc, "headers", None),
    )
