"""
Settings for the momentmap relay (Django + Channels, ASGI).

Key requirements implemented:
- Django + Django Channels (ASGI)
- Single process, all relay state in memory (no channel layer, no database)
- Environment-based configuration
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List

try:
    # Optional: allows local dev to load env vars from a `.env` file.
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    pass


BASE_DIR = Path(__file__).resolve().parent.parent


def _env(name: str, default: str | None = None) -> str | None:
    v = os.environ.get(name)
    return v if v not in (None, "") else default


def _env_bool(name: str, default: bool = False) -> bool:
    v = _env(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_csv(name: str, default: str = "") -> List[str]:
    raw = _env(name, default) or ""
    return [x.strip() for x in raw.split(",") if x.strip()]


DEBUG = _env_bool("DJANGO_DEBUG", default=False)

SECRET_KEY = _env("DJANGO_SECRET_KEY", "dev-insecure-secret-key-change-me")

ALLOWED_HOSTS = _env_csv("DJANGO_ALLOWED_HOSTS", default="localhost,127.0.0.1")

# The map client is served from elsewhere; it only issues GETs.
CORS_ALLOW_ALL_ORIGINS = _env_bool("CORS_ALLOW_ALL_ORIGINS", default=True)
CORS_ALLOWED_ORIGINS = _env_csv("CORS_ALLOWED_ORIGINS", default="")
CORS_ALLOW_CREDENTIALS = True

USE_X_FORWARDED_HOST = True


INSTALLED_APPS = [
    "corsheaders",
    # Channels must be installed to enable ASGI + websocket routing.
    "channels",
    "momentmap.relay.apps.RelayConfig",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "momentmap.urls"

WSGI_APPLICATION = "momentmap.wsgi.application"
ASGI_APPLICATION = "momentmap.asgi.application"

# Nothing is persisted; the relay forgets everything on restart.
DATABASES = {}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"}},
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
    "root": {"handlers": ["console"], "level": _env("DJANGO_LOG_LEVEL", "INFO") or "INFO"},
}
