"""
Response envelope: {success, message, data?, statusCode}. `data` is left out
when there is nothing to return.
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(success: bool, message: str, data: Any = None, status_code: int = 200) -> dict:
    body = {"success": success, "message": message, "statusCode": status_code}
    if data is not None:
        body["data"] = data
    return body


def respond(success: bool, message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope(success, message, data, status_code)),
    )


def success(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return respond(True, message, data, status_code)


def created(data: Any = None, message: str = "Created successfully") -> JSONResponse:
    return respond(True, message, data, 201)


def error(message: str = "Internal server error", status_code: int = 500, data: Optional[Any] = None) -> JSONResponse:
    return respond(False, message, data, status_code)


def bad_request(message: str = "Bad request", data: Optional[Any] = None) -> JSONResponse:
    return error(message, 400, data)
