"""
Cloudflare R2 storage provider implementation.

R2 is S3-compatible and has zero egress fees, which makes it a good host for
streamed audio and cover art.
"""

import logging
from typing import Optional, Dict

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from .storage_provider import S3StorageProvider

logger = logging.getLogger(__name__)

# Presigned URLs are only used when the bucket has no public domain
PRESIGNED_URL_EXPIRY = 7 * 24 * 3600


class CloudflareR2Provider(S3StorageProvider):
    """Cloudflare R2 storage implementation using the boto3 S3 client."""

    def __init__(self):
        self.s3_client = None
        self.bucket_name = None
        self.endpoint_url = None
        self.account_id = None
        self.public_url = None

    def authenticate(self, credentials: Dict[str, str]) -> bool:
        """
        Authenticate with Cloudflare R2.

        Args:
            credentials: Must contain:
                - account_id: Cloudflare account ID
                - access_key_id: R2 access key ID
                - secret_access_key: R2 secret access key
                - bucket: Bucket name
                - public_url: Optional public bucket domain (r2.dev or custom)
        """
        try:
            self.account_id = credentials['account_id']
            self.endpoint_url = f"https://{self.account_id}.r2.cloudflarestorage.com"
            self.bucket_name = credentials['bucket']
            public_url = credentials.get('public_url')
            self.public_url = public_url.rstrip('/') if public_url else None

            self.s3_client = boto3.client(
                's3',
                endpoint_url=self.endpoint_url,
                aws_access_key_id=credentials['access_key_id'],
                aws_secret_access_key=credentials['secret_access_key'],
                region_name='auto'  # R2 uses 'auto' region
            )

            # Bucket-scoped tokens cannot list buckets, so probe the bucket itself
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return True

        except (ClientError, NoCredentialsError, KeyError, TypeError) as e:
            logger.error(f"R2 authentication failed: {e}")
            return False

    def upload_bytes(self, data: bytes, remote_key: str,
                     content_type: Optional[str] = None) -> bool:
        try:
            kwargs = {'Bucket': self.bucket_name, 'Key': remote_key, 'Body': data}
            if content_type:
                kwargs['ContentType'] = content_type
            self.s3_client.put_object(**kwargs)
            return True
        except ClientError as e:
            logger.error(f"Upload of {remote_key} failed: {e}")
            return False

    def get_public_url(self, remote_key: str) -> str:
        """Public bucket URL when configured, otherwise a long-lived presigned URL."""
        if self.public_url:
            return f"{self.public_url}/{remote_key}"
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': remote_key},
                ExpiresIn=PRESIGNED_URL_EXPIRY
            )
        except ClientError as e:
            logger.error(f"URL generation failed: {e}")
            return ""
