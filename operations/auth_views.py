"""
Authentication views.

Login issues a JWT access/refresh pair; the console keeps both and calls
``refresh-token`` once when a request comes back 401. Refresh tokens are
rotated and the previous one is blacklisted, so a stolen refresh token
stops working after its first use by the legitimate client.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from operations.serializers.auth import LoginSerializer, RefreshSerializer
from operations.services.audit import log_action

from .models import User


def serialize_user(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'name': user.get_full_name() or user.username,
        'role': user.role,
        'phone': user.phone,
        'specialization': user.specialization,
        'consultation_fee': str(user.consultation_fee),
    }


def _username_for(account: str) -> str:
    """Accept either a username or the email address of an account."""
    if '@' in account:
        match = User.objects.filter(email__iexact=account).only('username').first()
        if match:
            return match.username
    return account


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Username or email plus password.

    Returns ``token``/``refreshToken`` (the names the console stores) and
    the same values as ``access``/``refresh``.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    account = s.validated_data['account']
    password = s.validated_data['password']

    user = authenticate(request, username=_username_for(account), password=password)
    ip = request.META.get('REMOTE_ADDR')
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'account': account, 'ip': ip})
        raise AuthenticationFailed('Invalid credentials')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    refresh = RefreshToken.for_user(user)
    access = str(refresh.access_token)
    return Response({
        'ok': True,
        'token': access,
        'refreshToken': str(refresh),
        'access': access,
        'refresh': str(refresh),
        'user': serialize_user(user),
    })

# DRF ScopedRateThrottle reads throttle_scope from the wrapped APIView class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_token_view(request):
    """Exchange a refresh token for a new access/refresh pair."""
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    inner = TokenRefreshSerializer(data={'refresh': s.validated_data['refresh']})
    try:
        inner.is_valid(raise_exception=True)
    except TokenError as exc:
        raise AuthenticationFailed(str(exc))
    data = inner.validated_data
    refresh = data.get('refresh', s.validated_data['refresh'])
    return Response({
        'ok': True,
        'token': data['access'],
        'refreshToken': refresh,
        'access': data['access'],
        'refresh': refresh,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    token = request.data.get('refreshToken') or request.data.get('refresh')
    count = 0
    if token:
        try:
            RefreshToken(token).blacklist()
        except TokenError as exc:
            raise ValidationError({'refreshToken': str(exc)})
        count = 1
    else:
        for outstanding in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=outstanding)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': serialize_user(request.user)})
