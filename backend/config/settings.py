"""Django settings for the panel backend.

Every value can be overridden from the environment; defaults target a
single-host install with the panel database and the proxy core config under
`PANEL_DATA_DIR`.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str] | None = None) -> list[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_json(name: str, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    return json.loads(raw)


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-dev-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", ["*"])

IS_TESTING = "pytest" in sys.modules or (len(sys.argv) > 1 and sys.argv[1] == "test")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "rest_framework",
    "rest_framework.authtoken",
    "accounts",
    "proxy_core",
    "integrations_github",
    "notifications",
    "panel",
    # Last: starts the scheduler once every app has declared its jobs.
    "scheduler",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

PANEL_DATA_DIR = Path(os.environ.get("PANEL_DATA_DIR", str(BASE_DIR / "data")))

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("PANEL_DB_PATH", str(PANEL_DATA_DIR / "panel.db")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "UTC")
USE_TZ = True

REST_FRAMEWORK = {
    # Token auth first so unauthenticated requests get 401 (WWW-Authenticate) rather than 403.
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.TokenAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_RENDERER_CLASSES": ["config.renderers.EnvelopeJSONRenderer"],
    "EXCEPTION_HANDLER": "config.exception_handler.custom_exception_handler",
}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}

# --- Panel -----------------------------------------------------------------

PANEL_VERSION = os.environ.get("PANEL_VERSION", "1.2.0")

# --- Scheduler ---------------------------------------------------------------

SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", True)
SCHEDULER_DRAIN_TIMEOUT_SECONDS = float(os.environ.get("SCHEDULER_DRAIN_TIMEOUT_SECONDS", "10"))
# {"job_name": {"enabled": bool, "schedule": "@every 1h" | "0 4 * * *" | seconds}}
SCHEDULER_JOB_OVERRIDES = _env_json("SCHEDULER_JOB_OVERRIDES", {})

UPDATE_CHECK_ENABLED = _env_bool("UPDATE_CHECK_ENABLED", True)
UPDATE_CHECK_SCHEDULE = os.environ.get("UPDATE_CHECK_SCHEDULE", "@daily")
UPDATE_CHECK_OWNER = os.environ.get("UPDATE_CHECK_OWNER", "AghayeCoder")
UPDATE_CHECK_PROJECT = os.environ.get("UPDATE_CHECK_PROJECT", "tx-ui")

CORE_AUTO_RESTART_ENABLED = _env_bool("CORE_AUTO_RESTART_ENABLED", False)
CORE_AUTO_RESTART_SCHEDULE = os.environ.get("CORE_AUTO_RESTART_SCHEDULE", "@every 6h")
CORE_AUTO_RESTART_FORCE = _env_bool("CORE_AUTO_RESTART_FORCE", True)

# --- External collaborators -------------------------------------------------

PROXY_CORE = {
    "binary_path": os.environ.get("PROXY_CORE_BINARY", "/usr/local/x-ui/bin/xray-linux-amd64"),
    "config_path": os.environ.get("PROXY_CORE_CONFIG", str(PANEL_DATA_DIR / "config.json")),
    "args": _env_list("PROXY_CORE_ARGS"),
    "stop_timeout_seconds": float(os.environ.get("PROXY_CORE_STOP_TIMEOUT_SECONDS", "5")),
    "start_grace_seconds": float(os.environ.get("PROXY_CORE_START_GRACE_SECONDS", "1")),
    "log_path": os.environ.get("PROXY_CORE_LOG_PATH", ""),
}

GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")
GITHUB_TIMEOUT_SECONDS = float(os.environ.get("GITHUB_TIMEOUT_SECONDS", "10"))

TELEGRAM_API_URL = os.environ.get("TELEGRAM_API_URL", "https://api.telegram.org")
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_ADMIN_CHAT_IDS = _env_list("TELEGRAM_ADMIN_CHAT_IDS")

BACKUP_FILES = _env_list(
    "BACKUP_FILES",
    [DATABASES["default"]["NAME"], PROXY_CORE["config_path"]],
)
