"""Django storage configuration for S3-compatible backends.

This module configures django-storages to work with:
- MinIO for local development
- AWS S3 for production

Both use the same S3Storage-based backend.
"""

from typing import Any, Final

from botocore.config import Config

from server.settings.components import config

# Storage configuration dictionary
# Uses S3-compatible storage for uploaded media
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.media.infrastructure.storage.MediaStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='media-uploads',
            ),
            'access_key': config('AWS_ACCESS_KEY_ID', default=None),
            'secret_key': config('AWS_SECRET_ACCESS_KEY', default=None),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='us-east-1',
            ),
            'file_overwrite': False,  # Prevent accidental overwrites
            'default_acl': None,  # Inherit bucket ACL
            'client_config': Config(
                connect_timeout=config(
                    'AWS_S3_CONNECT_TIMEOUT',
                    cast=int,
                    default=5,
                ),
                read_timeout=config(
                    'AWS_S3_READ_TIMEOUT',
                    cast=int,
                    default=30,
                ),
                retries={'max_attempts': 3, 'mode': 'standard'},
            ),
        },
    },
}

