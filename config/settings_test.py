"""
Test settings - always uses SQLite and local memory, never touches Redis or TMDB.
"""

from config.settings import *  # noqa: F401, F403

# Force SQLite for all tests - ignore DATABASE_PATH entirely
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",  # noqa: F405
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "movie-tracker-tests",
    }
}

# Faster password hashing for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

TMDB_READ_ACCESS_TOKEN = "test-token"

# Scans run inline so every database access stays on the test's connection
IMPORT_SCAN_MAX_WORKERS = 1

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Logging: Let pytest capture logs (don't use NullHandler)
# Use --log-cli-level=DEBUG or -o log_cli=true to see logs during tests
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "catalogue_app": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
    },
}
