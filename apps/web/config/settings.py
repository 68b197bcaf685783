"""
Django settings for Platter.

Every value can be overridden from the environment (or a .env file).
Run with: PLATTER_API_BASE_URL=https://api.example.com python -m django runserver
"""

from pathlib import Path

import environ  # type: ignore[import-untyped]

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environ
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1", "testserver"]),
    PLATTER_API_BASE_URL=(str, "http://localhost:5000"),
    PLATTER_API_TIMEOUT=(float, 30.0),
    PLATTER_BACKEND=(str, "http"),
    LOG_LEVEL=(str, "INFO"),
)
ENV_FILE = BASE_DIR.parent.parent / ".env"
if ENV_FILE.exists():
    environ.Env.read_env(ENV_FILE)

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env("SECRET_KEY", default="platter-dev-only-not-secret")

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# Application definition
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    # Local apps
    "apps.web.ordering",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "apps.web.config.urls"

# No database: identity, staged checkout and receipt live in the session,
# carts and orders live in the ordering backend
DATABASES: dict = {}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    },
}

SESSION_ENGINE = "django.contrib.sessions.backends.cache"
SESSION_COOKIE_AGE = 60 * 60 * 24 * 14  # 2 weeks

# Ordering backend
PLATTER_API_BASE_URL = env("PLATTER_API_BASE_URL")
PLATTER_API_TIMEOUT = env("PLATTER_API_TIMEOUT")
PLATTER_BACKEND = env("PLATTER_BACKEND")  # "http" or "mock"

# Logging
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": env("LOG_LEVEL"),
            "propagate": False,
        },
    },
}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
