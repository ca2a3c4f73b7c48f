"""
Cryptographic utilities for verification artifacts and registrant data.

This module provides functions for:
- Encrypting/decrypting personal data stored in the users collection
- Hashing emails and verification codes for database lookups
- Generating one-time codes, session ids and signed verification links
"""

import hashlib
import secrets
import base64
import logging
from urllib.parse import urlencode

import jwt
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from django.conf import settings

logger = logging.getLogger(__name__)

LINK_ALGORITHM = 'HS256'
CODE_DIGITS = 6


def _get_fernet_key():
    """
    Generate Fernet encryption key from settings.
    Uses PBKDF2 to derive a proper key from the ENCRYPTION_KEY setting.
    """
    password = settings.ENCRYPTION_KEY.encode()

    # Salt derived from the password itself
    salt = hashlib.sha256(password).digest()[:16]

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(password))

    return Fernet(key)


def encrypt_data(data):
    """
    Encrypt sensitive data using Fernet (AES-128).

    Args:
        data (str): Plain text data to encrypt

    Returns:
        str: Encrypted data as base64 string, None for empty input
    """
    if not data:
        return None

    fernet = _get_fernet_key()
    encrypted = fernet.encrypt(data.encode())
    return encrypted.decode()


def decrypt_data(encrypted_data):
    """
    Decrypt data that was encrypted with encrypt_data().

    Args:
        encrypted_data (str): Base64 encrypted string

    Returns:
        str: Decrypted plain text
    """
    if not encrypted_data:
        return None

    fernet = _get_fernet_key()
    decrypted = fernet.decrypt(encrypted_data.encode())
    return decrypted.decode()


def normalize_email(email):
    """Emails are the identity key: compare them stripped and lower-cased."""
    return (email or '').strip().lower()


def mask_email(email):
    """Log-safe form of an email: 'ana@x.com' -> 'an****@x.com'."""
    local, _, domain = (email or '').partition('@')
    return f"{local[:2]}****@{domain}" if domain else '****'


def hash_email(email):
    """
    Create SHA-256 hash of a normalized email for lookups.

    Example:
        >>> hash_email(" Ana@X.com ") == hash_email("ana@x.com")
        True
    """
    if not email:
        return None
    return hashlib.sha256(normalize_email(email).encode()).hexdigest()


def hash_code(code):
    """SHA-256 of a verification code. Codes are never stored in clear."""
    return hashlib.sha256((code or '').strip().encode()).hexdigest()


def generate_verification_code():
    """Random zero-padded 6-digit code."""
    return f"{secrets.randbelow(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"


def generate_session_id(prefix):
    """
    Random session identifier, e.g. 'session_1f3a...' or 'admin_9bc2...'.
    """
    return f"{prefix}_{secrets.token_hex(16)}"


def generate_link_nonce():
    return secrets.token_urlsafe(24)


def sign_verification_link(email, nonce, issued_at):
    """
    Build the signed token carried by a one-time verification link.

    Expiry is not encoded as a JWT 'exp' claim: the verifier checks the
    TTL against the pending record with its injected clock.
    """
    payload = {
        'email': normalize_email(email),
        'jti': nonce,
        'iat': int(issued_at.timestamp()),
    }
    return jwt.encode(payload, settings.VERIFICATION_LINK_SECRET, algorithm=LINK_ALGORITHM)


def decode_verification_link(token):
    """
    Verify the signature of a link token and return its claims.

    Raises:
        jwt.InvalidTokenError: If the signature or format is invalid
        ValueError: If required claims are missing
    """
    claims = jwt.decode(
        token,
        settings.VERIFICATION_LINK_SECRET,
        algorithms=[LINK_ALGORITHM],
        options={
            'verify_signature': True,
            'verify_exp': False,
            'verify_iat': False,
            'require': ['email', 'jti'],
        },
    )
    if not claims.get('email') or not claims.get('jti'):
        raise ValueError("Verification link is missing required claims")
    return claims


def build_verification_url(code, email, token):
    """Frontend URL the user opens from the email (?code=&email=&token=)."""
    query = urlencode({'code': code, 'email': normalize_email(email), 'token': token})
    return f"{settings.FRONTEND_URL}/?{query}"


# ==============================================================================
# HELPER FUNCTIONS FOR REGISTERED USER MODEL
# ==============================================================================

def encrypt_user_data(email, name):
    """
    Encrypt registrant personal data at once.

    Returns:
        dict: Dictionary with encrypted data and lookup hash
    """
    return {
        'email_hash': hash_email(email),
        'email_encrypted': encrypt_data(normalize_email(email)),
        'name_encrypted': encrypt_data(name),
    }


def decrypt_user_data(user):
    """
    Decrypt registrant personal data at once.

    Args:
        user (RegisteredUser): model instance
    """
    return {
        'email': decrypt_data(user.email_encrypted),
        'name': decrypt_data(user.name_encrypted),
    }
