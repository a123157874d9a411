"""Google Fit integration: REST client, data-source resolver, uploaders.

Requires ``google-api-python-client`` and an authorized
:class:`~fitbridge.core.auth.GoogleOAuth`.
"""

from .client import GoogleFitClient
from .resolver import DataSourceResolver, sanitize_id
from .sessions import SessionUploader
from .uploader import BatchUploader, build_dataset, chunked

__all__ = [
    "BatchUploader",
    "DataSourceResolver",
    "GoogleFitClient",
    "SessionUploader",
    "build_dataset",
    "chunked",
    "sanitize_id",
]
