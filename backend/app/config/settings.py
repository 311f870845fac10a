"""Environment-driven configuration. Values may be overridden by create_app(config=...)."""
import os
from datetime import timedelta

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be int, got {raw!r}')


def load_settings():
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        # Built-in administrator; has no users row and bypasses every permission check
        'ADMIN_EMAIL': os.getenv('ADMIN_EMAIL'),
        'ADMIN_PASSWORD': os.getenv('ADMIN_PASSWORD'),
        'JWT_ACCESS_TOKEN_EXPIRES': timedelta(hours=_int_env('JWT_ACCESS_TOKEN_HOURS', 24)),
        'PERMISSION_STRUCTURE_FILE': os.getenv('PERMISSION_STRUCTURE_FILE') or None,
        'PAGINATION_DEFAULT_LIMIT': _int_env('PAGINATION_DEFAULT_LIMIT', DEFAULT_LIMIT),
        'PAGINATION_MAX_LIMIT': _int_env('PAGINATION_MAX_LIMIT', MAX_LIMIT),
    }
