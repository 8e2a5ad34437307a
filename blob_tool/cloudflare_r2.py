"""
Cloudflare R2 blob store implementation.

R2 is S3-compatible and offers zero egress fees, which suits streaming the
pod's audio straight from a public bucket URL.
"""

import logging
from typing import Optional, Dict, List
from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError, NoCredentialsError, BotoCoreError

from shared.constants import CLOUDFLARE_R2_ENDPOINT_TEMPLATE
from shared.models import BlobInfo
from .storage_provider import BlobStore, BlobStoreError

logger = logging.getLogger(__name__)


class CloudflareR2Provider(BlobStore):
    """
    Cloudflare R2 blob store using the boto3 S3 client.

    Objects are addressed through ``public_url`` (the bucket's r2.dev or
    custom domain) when configured, otherwise through presigned URLs.
    """

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
                - access_key_id: R2 access key ID
                - secret_access_key: R2 secret access key
                - account_id: Cloudflare account ID
                - bucket: Bucket name
                - public_url: Public bucket base URL (optional)
        """
        try:
            self.account_id = credentials['account_id']
            self.endpoint_url = CLOUDFLARE_R2_ENDPOINT_TEMPLATE.format(account_id=self.account_id)
            self.bucket_name = credentials.get('bucket')
            self.public_url = (credentials.get('public_url') or "").rstrip("/") or None

            self.s3_client = boto3.client(
                's3',
                endpoint_url=self.endpoint_url,
                aws_access_key_id=credentials['access_key_id'],
                aws_secret_access_key=credentials['secret_access_key'],
                region_name='auto'  # R2 uses 'auto' region
            )

            if self.bucket_name:
                self.s3_client.head_bucket(Bucket=self.bucket_name)
            else:
                self.s3_client.list_buckets()
            return True

        except (ClientError, NoCredentialsError, KeyError) as e:
            logger.error("R2 authentication failed: %s", e)
            return False

    def list_blobs(self, prefix: Optional[str] = None,
                   limit: Optional[int] = None) -> List[BlobInfo]:
        """List objects in the bucket, following pagination up to ``limit``."""
        kwargs = {'Bucket': self.bucket_name}
        if prefix:
            kwargs['Prefix'] = prefix

        blobs: List[BlobInfo] = []
        try:
            paginator = self.s3_client.get_paginator('list_objects_v2')
            for page in paginator.paginate(**kwargs):
                for obj in page.get('Contents', []):
                    blobs.append(BlobInfo(
                        pathname=obj['Key'],
                        url=self.get_file_url(obj['Key']),
                        size=obj.get('Size', 0),
                        uploaded_at=obj['LastModified'].isoformat() if obj.get('LastModified') else None,
                    ))
                    if limit is not None and len(blobs) >= limit:
                        return blobs
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"List failed: {e}") from e
        return blobs

    def put(self, remote_key: str, data: bytes,
            content_type: Optional[str] = None) -> BlobInfo:
        """Upload bytes to R2."""
        extra = {}
        if content_type:
            extra['ContentType'] = content_type
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=remote_key,
                Body=data,
                **extra
            )
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Upload failed: {e}") from e
        return BlobInfo(pathname=remote_key, url=self.get_file_url(remote_key), size=len(data))

    def file_exists(self, remote_key: str) -> bool:
        """Check if object exists in R2."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=remote_key)
            return True
        except ClientError:
            return False

    def get_file_url(self, remote_key: str, expires_in: int = 3600) -> str:
        """Public URL when the bucket is public, otherwise a presigned URL."""
        if self.public_url:
            encoded = "/".join(quote(segment, safe="") for segment in remote_key.split("/"))
            return f"{self.public_url}/{encoded}"
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': remote_key},
                ExpiresIn=expires_in
            )
        except ClientError as e:
            logger.error("URL generation failed: %s", e)
            return ""
