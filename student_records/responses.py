# responses.py
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from typing import Any, Optional


def envelope(
    success: bool,
    message: Optional[str] = None,
    data: Any = None,
    count: Optional[int] = None,
) -> dict:
    """
    Build the JSON body shared by every endpoint:
    {"success": bool, "message"?: str, "count"?: int, "data"?: ...}

    Keys left as None are omitted.
    """
    body = {"success": success}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data
    return body


def success_response(data: Any = None, message: Optional[str] = None,
                     count: Optional[int] = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope(True, message=message, data=data, count=count)),
    )


def error_response(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(False, message=message))
