"""Django storage configuration for S3-compatible backends.

This module configures django-storages to work with any S3-compatible
service (AWS S3, MinIO, Cloudflare R2). File blobs are stored under
keys derived from the owner's folder tree, see
``cloudbox.apps.drive.logic.path_operations``.
"""

from typing import Any, Final

from cloudbox.settings.components import config

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'cloudbox.apps.drive.infrastructure.storage.FileStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='cloudbox',
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
            'file_overwrite': True,  # Keys embed the file id, never reused
            'default_acl': None,  # Inherit bucket ACL
        },
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
