"""
Django settings for the restops project.

Values come from RESTOPS_* environment variables so the same module serves
local development and deployed instances.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('RESTOPS_SECRET_KEY', 'django-insecure-restops-dev-key')

DEBUG = env_bool('RESTOPS_DEBUG', False)

ALLOWED_HOSTS = [host.strip() for host in os.environ.get('RESTOPS_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if host.strip()]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'rest_framework',
    'restops.apps.accounts',
    'restops.apps.branches',
    'restops.apps.inventory',
    'restops.apps.menu',
    'restops.apps.orders',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
]

ROOT_URLCONF = 'restops.urls'

TEMPLATES = []

ASGI_APPLICATION = 'restops.asgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('RESTOPS_DB_NAME', 'restops'),
        'USER': os.environ.get('RESTOPS_DB_USER', 'restops'),
        'PASSWORD': os.environ.get('RESTOPS_DB_PASSWORD', ''),
        'HOST': os.environ.get('RESTOPS_DB_HOST', 'localhost'),
        'PORT': os.environ.get('RESTOPS_DB_PORT', '5432'),
        'ATOMIC_REQUESTS': False,
    }
}

AUTH_USER_MODEL = 'accounts.User'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('RESTOPS_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'EXCEPTION_HANDLER': 'restops.utils.exceptions.api_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.environ.get('RESTOPS_ACCESS_TOKEN_MINUTES', '60'))),
    'AUTH_HEADER_TYPES': ('Bearer',),
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'user_id',
}

# Tunables for the catalog/inventory/order core, see restops.conf
RESTOPS = {
    'BRANCH_RESTORE_WINDOW_HOURS': int(os.environ.get('RESTOPS_BRANCH_RESTORE_WINDOW_HOURS', '48')),
    'ORDER_NUMBER_MAX_RETRIES': int(os.environ.get('RESTOPS_ORDER_NUMBER_MAX_RETRIES', '5')),
    'POS_ORDER_PREFIX': 'ORD',
    'WEBSITE_ORDER_PREFIX': 'WEB',
}
