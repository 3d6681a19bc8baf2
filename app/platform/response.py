from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
    error_type: Optional[str] = None,
) -> JSONResponse:
    """
    Envelope shared by every API response.

    status is "success" below 400 and "error" otherwise. error_type carries a
    machine-readable reason code (e.g. "server_shutdown") for error replies.
    """
    status_str = "success" if status_code < 400 else "error"
    content = {
        "status_code": status_code,
        "status": status_str,
        "message": message,
        "data": jsonable_encoder(data) if data is not None else {},
    }
    if error_type:
        content["error_type"] = error_type

    return JSONResponse(status_code=status_code, content=content)
