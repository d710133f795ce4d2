"""
HTTP client shared by every console workflow.

Wraps a :class:`requests.Session` with the dashboard's auth rules:

* the access token goes out as ``Authorization: Bearer <token>``;
* a 429 is raised straight away and never retried;
* a 401 triggers exactly one ``POST /auth/refresh-token`` followed by one
  retry of the original request. A second 401, a failed refresh or a
  missing refresh token clears the stored tokens and forces a logout.

Every failure surfaces as :class:`ApiError` carrying the server's message
(or a generic fallback) so callers can show it in a toast.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'http://localhost:5002/api'
REFRESH_PATH = '/auth/refresh-token'
GENERIC_ERROR = 'Something went wrong. Please try again.'
SESSION_EXPIRED = 'Your session has expired. Please log in again.'
RATE_LIMITED = 'Too many requests. Please wait a moment and try again.'


class ApiError(Exception):
    def __init__(self, message: str, *, status: Optional[int] = None, code: Optional[str] = None,
                 payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.payload = payload


def error_message(payload, fallback: str = GENERIC_ERROR) -> str:
    """Server text from ``error.message``, ``message`` or ``detail``; else ``fallback``."""
    if isinstance(payload, dict):
        error = payload.get('error')
        if isinstance(error, dict) and error.get('message'):
            return str(error['message'])
        if isinstance(error, str) and error:
            return error
        for key in ('message', 'detail'):
            if payload.get(key):
                return str(payload[key])
    return fallback


@dataclass
class TokenStore:
    """Where the console keeps its access and refresh tokens."""
    token: Optional[str] = None
    refresh_token: Optional[str] = None

    def set(self, token: str, refresh_token: Optional[str]) -> None:
        self.token = token
        if refresh_token:
            self.refresh_token = refresh_token

    def clear(self) -> None:
        self.token = None
        self.refresh_token = None


class DashboardClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, *, tokens: Optional[TokenStore] = None,
                 session: Optional[requests.Session] = None,
                 on_logout: Optional[Callable[[], None]] = None, timeout: float = 30):
        self.base_url = base_url.rstrip('/')
        self.tokens = tokens or TokenStore()
        self.session = session or requests.Session()
        self.on_logout = on_logout
        self.timeout = timeout

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def login(self, username: str, password: str) -> dict:
        data = self.request('POST', '/auth/login', json={'username': username, 'password': password},
                            authenticate=False)
        self.tokens.set(data.get('token') or data.get('access'), data.get('refreshToken') or data.get('refresh'))
        return data

    def logout(self) -> None:
        """Tell the server to drop the refresh token, then forget both tokens."""
        refresh = self.tokens.refresh_token
        try:
            if self.tokens.token:
                # No refresh-and-retry here; an expired session is already logged out.
                resp = self._send('POST', '/auth/logout', json={'refreshToken': refresh} if refresh else {})
                if not resp.ok:
                    logger.info("server logout returned %s", resp.status_code)
        except ApiError as exc:
            logger.info("server logout failed: %s", exc.message)
        finally:
            self._force_logout()

    def _force_logout(self) -> None:
        self.tokens.clear()
        if self.on_logout is not None:
            self.on_logout()

    def _refresh(self) -> bool:
        """One refresh attempt; True when a new token pair was stored."""
        refresh = self.tokens.refresh_token
        if not refresh:
            return False
        try:
            resp = self.session.post(self.url(REFRESH_PATH), json={'refreshToken': refresh}, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("token refresh failed: %s", exc)
            return False
        if not resp.ok:
            return False
        data = self._json(resp)
        body = data.get('data', data) if isinstance(data, dict) else {}
        token = body.get('token') or body.get('access')
        if not token:
            return False
        self.tokens.set(token, body.get('refreshToken') or body.get('refresh'))
        return True

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def _send(self, method: str, path: str, *, authenticate: bool = True, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop('headers', None) or {})
        if authenticate and self.tokens.token:
            headers['Authorization'] = f"Bearer {self.tokens.token}"
        try:
            return self.session.request(method, self.url(path), headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError('Unable to reach the server. Check your connection and try again.') from exc

    @staticmethod
    def _json(resp: requests.Response):
        try:
            return resp.json()
        except ValueError:
            return None

    def request(self, method: str, path: str, *, authenticate: bool = True, **kwargs):
        resp = self._send(method, path, authenticate=authenticate, **kwargs)

        if resp.status_code == 429:
            raise ApiError(error_message(self._json(resp), RATE_LIMITED), status=429)

        if resp.status_code == 401 and authenticate:
            if not self._refresh():
                self._force_logout()
                raise ApiError(SESSION_EXPIRED, status=401, payload=self._json(resp))
            resp = self._send(method, path, authenticate=True, **kwargs)
            if resp.status_code == 401:
                self._force_logout()
                raise ApiError(SESSION_EXPIRED, status=401, payload=self._json(resp))
            if resp.status_code == 429:
                raise ApiError(error_message(self._json(resp), RATE_LIMITED), status=429)

        payload = self._json(resp)
        if not resp.ok:
            code = None
            if isinstance(payload, dict) and isinstance(payload.get('error'), dict):
                code = payload['error'].get('code')
            raise ApiError(error_message(payload), status=resp.status_code, code=code, payload=payload)
        return payload

    def get(self, path: str, **kwargs):
        return self.request('GET', path, **kwargs)

    def post(self, path: str, **kwargs):
        return self.request('POST', path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self.request('DELETE', path, **kwargs)
