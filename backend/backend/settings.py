"""
Django settings for the rescue dispatch backend.

Every deploy-specific value is read from the environment.  Domain
constants (deposit amount, escalation deadline, visibility radii) default
to ``core.constants`` and may be overridden here or per-test with
``override_settings``.
"""

import os
from datetime import timedelta
from pathlib import Path

from core import constants

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY",
    "django-insecure-local-development-key-change-me",
)
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if h]


# ── Applications ─────────────────────────────────────────────────────

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",

    "core.apps.CoreConfig",
    "accounts.apps.AccountsConfig",
    "wallet.apps.WalletConfig",
    "rescues.apps.RescuesConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "backend.wsgi.application"


# ── Database ─────────────────────────────────────────────────────────
# SQLite by default; set DB_ENGINE=postgres for real row-level locking.

if os.environ.get("DB_ENGINE", "sqlite") == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("DB_NAME", "rescue"),
            "USER": os.environ.get("DB_USER", "rescue"),
            "PASSWORD": os.environ.get("DB_PASSWORD", ""),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "5432"),
            "ATOMIC_REQUESTS": False,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ── Auth ─────────────────────────────────────────────────────────────

AUTH_USER_MODEL = "accounts.User"

AUTHENTICATION_BACKENDS = [
    "accounts.backends.MultiFieldAuthBackend",
    "django.contrib.auth.backends.ModelBackend",
]

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
     "OPTIONS": {"min_length": 6}},
]


# ── I18N / static / media ───────────────────────────────────────────

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_URL = "/media/"
MEDIA_ROOT = BASE_DIR / "media"


# ── Django REST Framework ───────────────────────────────────────────

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(hours=12),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Rescue Dispatch API",
    "DESCRIPTION": "Rescue-case lifecycle: reporting, org acceptance, "
                   "facility escalation, carrier transport and deposit refunds.",
    "VERSION": "0.1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# ── Celery ───────────────────────────────────────────────────────────

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)


# ── Rescue domain ────────────────────────────────────────────────────

RESCUE_DEPOSIT_AMOUNT = int(os.environ.get("RESCUE_DEPOSIT_AMOUNT", constants.RESCUE_DEPOSIT_AMOUNT))
MIN_TOP_UP_AMOUNT = int(os.environ.get("MIN_TOP_UP_AMOUNT", constants.MIN_TOP_UP_AMOUNT))
# Shared with the payment gateway; top-ups are rejected while it is empty.
PAYMENT_GATEWAY_SECRET = os.environ.get("PAYMENT_GATEWAY_SECRET", "")
MAX_RESCUE_IMAGES = constants.MAX_RESCUE_IMAGES
ESCALATION_DEADLINE_SECONDS = int(
    os.environ.get("ESCALATION_DEADLINE_SECONDS", constants.ESCALATION_DEADLINE_SECONDS)
)
ESCALATION_INTERVAL_SECONDS = int(
    os.environ.get("ESCALATION_INTERVAL_SECONDS", constants.ESCALATION_INTERVAL_SECONDS)
)
ORG_VISIBILITY_RADIUS_KM = float(
    os.environ.get("ORG_VISIBILITY_RADIUS_KM", constants.ORG_VISIBILITY_RADIUS_KM)
)
FACILITY_VISIBILITY_RADIUS_KM = float(
    os.environ.get("FACILITY_VISIBILITY_RADIUS_KM", constants.FACILITY_VISIBILITY_RADIUS_KM)
)

CELERY_BEAT_SCHEDULE = {
    "escalate-overdue-rescues": {
        "task": "rescues.tasks.escalate_overdue_rescues",
        "schedule": float(ESCALATION_INTERVAL_SECONDS),
    },
}


# ── Logging ──────────────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("DJANGO_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "accounts": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "wallet": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "rescues": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
