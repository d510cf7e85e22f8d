"""Media upload and server settings."""

from server.settings.components import config

# Per-file byte limit, enforced while decoding and again by the validator
MEDIA_MAX_FILE_SIZE = config(
    'MEDIA_MAX_FILE_SIZE',
    cast=int,
    default=10 * 1024 * 1024,
)
MEDIA_MAX_FILES_PER_REQUEST = config(
    'MEDIA_MAX_FILES_PER_REQUEST',
    cast=int,
    default=1,
)

# Seconds before a media request is answered with 408
MEDIA_REQUEST_TIMEOUT = config(
    'MEDIA_REQUEST_TIMEOUT',
    cast=float,
    default=30,
)

# Objects younger than this are never treated as orphans
MEDIA_ORPHAN_GRACE_PERIOD = config(
    'MEDIA_ORPHAN_GRACE_PERIOD',
    cast=int,
    default=3600,
)

# ASGI server host and port
MEDIA_SERVER_HOST = config('MEDIA_SERVER_HOST', default='0.0.0.0')  # noqa: S104
MEDIA_SERVER_PORT = config('MEDIA_SERVER_PORT', cast=int, default=3000)
