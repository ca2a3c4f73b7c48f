"""
Authentication views - registration, email verification, admin access
"""
import logging

from rest_framework.views import APIView

from voting.runtime import machine_for, result_response, validation_error_response
from .serializers import AdminLoginSerializer, RegistrationSerializer, VerifySerializer

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """
    Submit the registration form and send a verification email.

    Request body:
    - email: str
    - name: str
    - jury_code: str (optional)

    Example response:
        {
            "success": true,
            "message": "Se envió un link de verificación...",
            "email": "ana@x.com",
            "is_jury": true,
            "app": {"state": "awaiting_verification", ...}
        }
    """

    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        machine = machine_for(request)
        machine.ensure_resolved()

        result = machine.register(
            serializer.validated_data['email'],
            serializer.validated_data['name'],
            serializer.validated_data.get('jury_code', ''),
        )
        return result_response(result, machine)


class ResendView(APIView):
    """
    Re-send the verification email with the pending registration data.
    """

    def post(self, request):
        machine = machine_for(request)
        result = machine.resend()
        return result_response(result, machine)


class VerifyView(APIView):
    """
    Verify a code + email pair or a signed link token.
    On success the response carries the new voter session.
    """

    def post(self, request):
        serializer = VerifySerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        machine = machine_for(request)
        result = machine.verify(
            code=serializer.validated_data.get('code'),
            email=serializer.validated_data.get('email'),
            token=serializer.validated_data.get('token'),
        )
        return result_response(result, machine)


class LogoutView(APIView):
    """Clear the voter session."""

    def post(self, request):
        machine = machine_for(request)
        result = machine.logout()
        return result_response(result, machine)


class AdminLoginView(APIView):
    """
    Validate the admin key and open an 8-hour admin session.

    Request body:
    - admin_key: str
    """

    def post(self, request):
        serializer = AdminLoginSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        machine = machine_for(request)
        result = machine.admin_login(serializer.validated_data['admin_key'])
        return result_response(result, machine)


class AdminLogoutView(APIView):
    """Close the admin session (and the voter session, if any)."""

    def post(self, request):
        machine = machine_for(request)
        result = machine.admin_logout()
        return result_response(result, machine)
