"""
Django REST Framework serializers for authentication app.

These serializers only shape request input; business validation
(email format, jury code, artifact checks) happens in the core so that
every failure carries an ErrorKind.
"""

from rest_framework import serializers


class RegistrationSerializer(serializers.Serializer):
    """
    Registration form: name, email and optional jury code.
    """
    email = serializers.CharField(allow_blank=True, max_length=254)
    name = serializers.CharField(allow_blank=True, max_length=255)
    jury_code = serializers.CharField(allow_blank=True, required=False, default='')


class VerifySerializer(serializers.Serializer):
    """
    Verification artifact: either code + email, or a signed link token.
    """
    code = serializers.CharField(required=False, allow_blank=True, default='')
    email = serializers.CharField(required=False, allow_blank=True, default='')
    token = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        if data.get('token'):
            return data
        if not data.get('code') or not data.get('email'):
            raise serializers.ValidationError(
                'Provide either token, or both code and email.'
            )
        return data


class AdminLoginSerializer(serializers.Serializer):
    admin_key = serializers.CharField(allow_blank=True, trim_whitespace=False)
