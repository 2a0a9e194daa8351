"""
Django settings for the waste collection dispatch project.

Values come from the environment. An optional ``env_var.env`` file in the
project root is loaded first so local development does not need exported
variables.
"""
import os
from pathlib import Path

from dispatch_core.utils.env_loader import load_env_from_file

BASE_DIR = Path(__file__).resolve().parent.parent

load_env_from_file(os.path.join(BASE_DIR, 'env_var.env'))

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'insecure-development-key-change-me')
DEBUG = os.getenv('DJANGO_DEBUG', 'False').lower() == 'true'
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'bins',
    'fleet',
    'pickups',
    'route_optimizer',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'dispatch.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

USE_TZ = True
TIME_ZONE = os.getenv('TIME_ZONE', 'UTC')

# --- Dispatch scheduler intervals (seconds) ---
AUTO_PICKUP_INTERVAL_SECONDS = int(os.getenv('AUTO_PICKUP_INTERVAL_SECONDS', 30 * 60))
PICKUP_REMINDER_INTERVAL_SECONDS = int(os.getenv('PICKUP_REMINDER_INTERVAL_SECONDS', 5 * 60))
OVERDUE_CHECK_INTERVAL_SECONDS = int(os.getenv('OVERDUE_CHECK_INTERVAL_SECONDS', 10 * 60))

# --- Collaborator endpoints ---
NOTIFICATION_WEBHOOK_URL = os.getenv('NOTIFICATION_WEBHOOK_URL')
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv('NOTIFICATION_TIMEOUT_SECONDS', 5))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s',
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
        'level': 'WARNING',
    },
    'loggers': {
        'bins': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'fleet': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'pickups': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
        'route_optimizer': {'handlers': ['console'], 'level': 'INFO', 'propagate': False},
    },
}
