"""S3 Storage Service for dispute documents.

Verified evidence files are stored privately under
``{customer_id}/{dispute_id}/{timestamp}-{requirement}.{ext}``.
"""

import logging
from datetime import datetime
from io import BytesIO

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from app.config import settings
from app.core.exceptions import ExternalServiceError
from app.utils.dates import utcnow
from app.utils.validators import file_extension, slugify_segment

logger = logging.getLogger(__name__)


class StorageService:
    """S3/MinIO storage service for dispute evidence."""

    MAX_DOCUMENT_SIZE = 20 * 1024 * 1024  # 20MB

    def __init__(self) -> None:
        """Initialize S3 client."""
        self._client = None
        self._bucket = settings.s3_bucket_name

    @property
    def client(self):
        """Lazy-load S3 client."""
        if self._client is None:
            config = Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "adaptive"},
            )
            self._client = boto3.client(
                "s3",
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,  # For MinIO in dev
                config=config,
            )
        return self._client

    def document_key(
        self,
        customer_id: str,
        dispute_id: str,
        requirement_name: str,
        filename: str,
        at: datetime | None = None,
    ) -> str:
        """Generate the storage key for a dispute document.

        Args:
            customer_id: Customer UUID
            dispute_id: Dispute UUID
            requirement_name: Evidence requirement the file satisfies
            filename: Original filename (for the extension)
            at: Upload time, defaults to now

        Returns:
            str: Key like '<customer>/<dispute>/1718000000000-proof-of-purchase.pdf'
        """
        timestamp = int((at or utcnow()).timestamp() * 1000)
        return (
            f"{customer_id}/{dispute_id}/{timestamp}-"
            f"{slugify_segment(requirement_name)}.{file_extension(filename)}"
        )

    async def upload_document(self, data: bytes, key: str, content_type: str) -> str:
        """Upload a private document.

        Args:
            data: File content
            key: Destination key from ``document_key``
            content_type: MIME type

        Returns:
            str: S3 key (not public URL, requires signed URL to access)
        """
        if len(data) > self.MAX_DOCUMENT_SIZE:
            raise ValueError(f"Document exceeds maximum size of {self.MAX_DOCUMENT_SIZE // 1024 // 1024}MB")

        try:
            self.client.upload_fileobj(
                BytesIO(data),
                self._bucket,
                key,
                ExtraArgs={"ContentType": content_type},  # No ACL = private
            )
        except ClientError as e:
            logger.error("Document upload failed for %s: %s", key, e)
            raise ExternalServiceError("document storage", "upload failed") from e

        return key

    def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        """Generate a presigned URL for a stored document.

        Args:
            key: S3 object key
            expires_in: URL expiration in seconds

        Returns:
            str: Presigned URL
        """
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=expires_in,
        )


# Singleton instance
storage_service = StorageService()
