"""Response envelope shared by every router: {success, data|error, requestId}."""

import uuid
from typing import Any

from fastapi import Request


def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def ok(request: Request, data: Any) -> dict:
    return {"success": True, "data": data, "requestId": request_id_of(request)}


def error_body(request: Request, code: str, message: str) -> dict:
    return {
        "success": False,
        "error": {"code": code, "message": message},
        "requestId": request_id_of(request),
    }
