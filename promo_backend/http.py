"""JSON helpers shared by the claim views."""

from __future__ import annotations

import json
import logging
import uuid
from functools import wraps
from typing import Any, Dict, Optional

from django.http import JsonResponse

from ledger.locks import ClaimLockError

from .errors import AllocationError

logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Raised when a request body or query string is malformed."""


def json_error(message: str, status: int = 400, extra: Optional[Dict[str, Any]] = None) -> JsonResponse:
    payload: Dict[str, Any] = {"success": False, "error": message}
    if extra:
        payload.update(extra)
    return JsonResponse(payload, status=status)


def parse_body(request) -> Dict[str, Any]:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RequestError(f"Request body is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise RequestError("Request body must be a JSON object.")
    return payload


def require_text(payload: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    raise RequestError(f"{keys[0]} is required.")


def require_uuid(payload: Dict[str, Any], *keys: str) -> uuid.UUID:
    raw = require_text(payload, *keys)
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise RequestError(f"{keys[0]} must be a valid UUID.") from exc


def claim_guard(func):
    """Translate claim errors into JSON responses."""

    @wraps(func)
    def _wrapped(request, *args, **kwargs):
        try:
            return func(request, *args, **kwargs)
        except RequestError as exc:
            return json_error(str(exc), status=400)
        except ClaimLockError as exc:
            return json_error(str(exc), status=503)
        except AllocationError as exc:
            if exc.status >= 500:
                logger.error("Claim request failed: %s", exc)
            return JsonResponse(exc.to_payload(), status=exc.status)

    return _wrapped
