"""
Django settings for pitch_voting_api project.

Secrets and tunables come from environment variables; the defaults are
for local development only.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-change-me')
DEBUG = env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'authentication',
    'voting.apps.VotingConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'pitch_voting_api.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'pitch_voting_api.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'es'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

# Client-side ephemeral storage: voter/admin sessions, pending verification
# and the vote lookup cache live in the signed session cookie.
SESSION_ENGINE = os.environ.get(
    'SESSION_ENGINE', 'django.contrib.sessions.backends.signed_cookies'
)
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = 'Lax'
SESSION_EXPIRE_AT_BROWSER_CLOSE = True

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'UNAUTHENTICATED_USER': None,
}

# ==============================================================================
# VOTING CONFIGURATION
# ==============================================================================

ADMIN_KEY = os.environ.get('ADMIN_KEY', '')
JURY_CODE = os.environ.get('JURY_CODE', '')

# Used to sign verification links (HS256) and derive the PII encryption key
VERIFICATION_LINK_SECRET = os.environ.get('VERIFICATION_LINK_SECRET', SECRET_KEY)
ENCRYPTION_KEY = os.environ.get('ENCRYPTION_KEY', SECRET_KEY)

VERIFICATION_TTL_SECONDS = int(os.environ.get('VERIFICATION_TTL_SECONDS', 60 * 60))
VOTER_SESSION_HOURS = int(os.environ.get('VOTER_SESSION_HOURS', 24))
ADMIN_SESSION_HOURS = int(os.environ.get('ADMIN_SESSION_HOURS', 8))
VOTE_CACHE_SECONDS = int(os.environ.get('VOTE_CACHE_SECONDS', 5 * 60))
VOTE_CACHE_ENABLED = env_bool('VOTE_CACHE_ENABLED', True)
THANK_YOU_SECONDS = int(os.environ.get('THANK_YOU_SECONDS', 3))

FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:5173').rstrip('/')

# Notifier collaborator
NOTIFIER_BACKEND = os.environ.get(
    'NOTIFIER_BACKEND', 'authentication.notifier.DjangoMailNotifier'
)
BREVO_API_URL = os.environ.get('BREVO_API_URL', 'https://api.brevo.com/v3/smtp/email')
BREVO_API_KEY = os.environ.get('BREVO_API_KEY', '')
BREVO_SENDER_EMAIL = os.environ.get('BREVO_SENDER_EMAIL', 'no-reply@pluginpitch.local')
BREVO_SENDER_NAME = os.environ.get('BREVO_SENDER_NAME', 'Plugin Pitch')

EMAIL_BACKEND = os.environ.get(
    'EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend'
)
DEFAULT_FROM_EMAIL = BREVO_SENDER_EMAIL

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.environ.get('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}
