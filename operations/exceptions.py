"""
Unified API error handling.

Every failure leaves the API as ``{"ok": false, "error": {"code", "message"}}``
so the dashboard can show ``message`` in a toast without knowing which
layer raised it.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The resource is in a conflicting state.'
    default_code = 'conflict'


class ServiceUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Service temporarily unavailable, try again later.'
    default_code = 'service_unavailable'


class UpstreamError(APIException):
    """An upstream service rejected the call; carries the upstream status."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Upstream service error.'
    default_code = 'upstream_error'

    def __init__(self, detail=None, *, status_code: int | None = None, code=None):
        super().__init__(detail, code)
        if status_code is not None:
            self.status_code = status_code


def _first_message(data) -> str:
    """Flatten DRF error payloads to a single human readable line."""
    if isinstance(data, dict):
        if 'detail' in data:
            return _first_message(data['detail'])
        for field, value in data.items():
            msg = _first_message(value)
            return msg if field == 'non_field_errors' else f"{field}: {msg}"
        return ''
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ''
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("Unhandled API error in %s", context.get('view'), exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
            status=500,
        )
    code = getattr(exc, 'default_code', 'api_error')
    if hasattr(exc, 'get_codes'):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    error = {'code': code, 'message': _first_message(resp.data)}
    if isinstance(resp.data, dict) and 'detail' not in resp.data:
        error['fields'] = resp.data
    resp.data = {'ok': False, 'error': error}
    return resp
