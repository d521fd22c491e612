"""Envelope shared by every endpoint.

    {"code": 0, "message": "...", "data": ..., "timestamp": "...", "request_id": "req_..."}

``code`` is 0 on success, otherwise the AppError code; failed calls carry the
error family in ``data.kind`` so clients can branch without parsing messages.
"""

from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.bb_common.datetime_utils import utc_now
from src.bb_common.id_generator import new_request_id


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def _bind(resp: ApiResponse, request: Request | None) -> ApiResponse:
    if request is not None:
        resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def success_response(
    data: Any = None, message: str = "success", request: Request | None = None
) -> ApiResponse:
    """Wrap ``data``; with ``request`` the middleware's request id is echoed back."""
    return _bind(ApiResponse(message=message, data=data), request)


def error_response(
    code: int, message: str, kind: str | None = None, request: Request | None = None
) -> ApiResponse:
    return _bind(
        ApiResponse(code=code, message=message, data={"kind": kind} if kind else None),
        request,
    )
