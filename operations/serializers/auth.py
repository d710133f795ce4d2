from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField()

    def validate(self, attrs):
        account = (attrs.get('username') or attrs.get('email') or '').strip()
        if not account:
            raise serializers.ValidationError('Username or email is required')
        attrs['account'] = account
        return attrs

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class RefreshSerializer(serializers.Serializer):
    refreshToken = serializers.CharField(required=False)
    refresh = serializers.CharField(required=False)

    def validate(self, attrs):
        token = attrs.get('refreshToken') or attrs.get('refresh')
        if not token:
            raise serializers.ValidationError('Refresh token is required')
        return {'refresh': token}
