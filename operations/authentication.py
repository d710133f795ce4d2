"""
Bearer authentication for the API.

Kept separate from any view module so that Django REST framework can import
it during initialisation without pulling in the views (avoids circular
imports).
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication


class BearerAuthentication(JWTAuthentication):
    """JWT access tokens sent as ``Authorization: Bearer <token>``.

    A stable import path for the project's configuration; the header
    keyword itself comes from ``SIMPLE_JWT['AUTH_HEADER_TYPES']``.
    """

    www_authenticate_realm = 'hospital-ops'
