"""
Notifier collaborators - deliver verification artifacts by email.

This module provides:
- DjangoMailNotifier: sends through django.core.mail (default)
- BrevoNotifier: sends through the Brevo transactional email HTTP API
- get_notifier(): loads the backend configured in NOTIFIER_BACKEND

A notifier never raises: every failure becomes a NotificationResult
with success=False, which the issuer treats as a terminal failure.
"""

import logging
from dataclasses import dataclass

import requests
from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string

from .crypto_utils import mask_email

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds

SUBJECT = 'Plugin Pitch - Verifica tu email'


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message: str


def render_verification_text(template_params):
    """
    Plain-text body for a verification email.

    template_params keys: user_name, code, link, is_jury, ttl_minutes
    """
    role_line = (
        'Tu voto cuenta doble como jurado.\n\n'
        if template_params.get('is_jury') else ''
    )
    return (
        f"Hola {template_params.get('user_name', '')},\n\n"
        f"Tu código de verificación es: {template_params['code']}\n\n"
        f"También puedes abrir este link para verificar tu email:\n"
        f"{template_params['link']}\n\n"
        f"{role_line}"
        f"El código expira en {template_params.get('ttl_minutes', 60)} minutos."
    )


class DjangoMailNotifier:
    """
    Sends the verification email with Django's configured EMAIL_BACKEND.
    Tests use the locmem backend and inspect django.core.mail.outbox.
    """

    def send(self, email, template_params):
        try:
            sent = send_mail(
                SUBJECT,
                render_verification_text(template_params),
                settings.DEFAULT_FROM_EMAIL,
                [email],
                fail_silently=False,
            )
        except Exception as e:
            logger.error(f"Failed to send verification email to {mask_email(email)}: {e}", exc_info=True)
            return NotificationResult(False, 'Error al enviar el email. Por favor intenta más tarde.')

        if not sent:
            logger.warning(f"Email backend accepted no message for {mask_email(email)}")
            return NotificationResult(False, 'Error al enviar el email. Por favor intenta más tarde.')

        logger.info(f"Verification email sent to {mask_email(email)}")
        return NotificationResult(True, 'Email enviado')


class BrevoNotifier:
    """
    Sends the verification email through Brevo's transactional API.

    Settings:
        BREVO_API_URL, BREVO_API_KEY, BREVO_SENDER_EMAIL, BREVO_SENDER_NAME
    """

    def __init__(self, session=None):
        self._session = session or requests.Session()

    def _payload(self, email, template_params):
        return {
            'sender': {
                'email': settings.BREVO_SENDER_EMAIL,
                'name': settings.BREVO_SENDER_NAME,
            },
            'to': [{'email': email, 'name': template_params.get('user_name') or email}],
            'subject': SUBJECT,
            'textContent': render_verification_text(template_params),
            'params': template_params,
        }

    def send(self, email, template_params):
        if not settings.BREVO_API_KEY:
            logger.error("BREVO_API_KEY is not configured")
            return NotificationResult(False, 'Servicio de email no configurado.')

        try:
            response = self._session.post(
                settings.BREVO_API_URL,
                json=self._payload(email, template_params),
                headers={
                    'api-key': settings.BREVO_API_KEY,
                    'accept': 'application/json',
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Brevo request failed for {mask_email(email)}: {e}")
            return NotificationResult(False, 'Error al enviar el email. Por favor intenta más tarde.')

        message_id = None
        try:
            message_id = response.json().get('messageId')
        except ValueError:
            logger.debug("Brevo response had no JSON body")

        logger.info(f"Verification email queued by Brevo for {mask_email(email)} (id: {message_id})")
        return NotificationResult(True, 'Email enviado')


def get_notifier():
    """Instantiate the notifier named by settings.NOTIFIER_BACKEND."""
    return import_string(settings.NOTIFIER_BACKEND)()
