"""
S3 storage for certification documents.

Files are stored under ``{org_id}/{asset_id}/{timestamp}.{ext}``; documents
shared by a bulk upload live under ``{org_id}/bulk/``.
"""

import logging
import time
import uuid
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

logger = logging.getLogger(__name__)

BULK_PREFIX = "bulk"


class DocumentStorage:
    """Upload certification documents to S3 and hand back a stable URL."""

    def __init__(self, bucket_name: str, region: str = "us-east-1",
                 url_base: Optional[str] = None):
        """
        Initialize the document store.

        Args:
            bucket_name: Name of the certifications bucket
            region: AWS region for S3 operations
            url_base: Public base URL (CDN or custom domain); defaults to the
                bucket's virtual-hosted S3 endpoint
        """
        self.bucket_name = bucket_name
        self.region = region
        self.url_base = (url_base or f"https://{bucket_name}.s3.{region}.amazonaws.com").rstrip("/")

        try:
            self.s3_client = boto3.client('s3', region_name=region)
            logger.info(f"Initialized document storage for bucket: {bucket_name}")
        except NoCredentialsError:
            logger.error("AWS credentials not found")
            raise

    @staticmethod
    def build_key(org_id: str, asset_id: Optional[str], file_name: str) -> str:
        """Object key for a new upload; never reuses an existing key"""
        ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
        timestamp = int(time.time() * 1000)
        folder = asset_id or BULK_PREFIX
        return f"{org_id}/{folder}/{timestamp}-{uuid.uuid4().hex[:8]}.{ext}"

    def url_for(self, key: str) -> str:
        return f"{self.url_base}/{key}"

    def upload_certification(self, data: bytes, file_name: str, org_id: str,
                             user_id: str, asset_id: Optional[str] = None,
                             content_type: Optional[str] = None) -> str:
        """
        Store a certification document.

        Args:
            data: File content
            file_name: Original file name, used for the extension and metadata
            org_id: Owning organization
            user_id: Uploading user
            asset_id: Asset the document belongs to; None for bulk uploads
            content_type: Optional content type

        Returns:
            URL of the stored object

        Raises:
            ClientError: If the S3 upload fails
        """
        key = self.build_key(org_id, asset_id, file_name)
        metadata: Dict[str, str] = {
            'org-id': org_id,
            'uploaded-by': user_id,
            'asset-id': asset_id or BULK_PREFIX,
        }
        upload_params = {
            'Bucket': self.bucket_name,
            'Key': key,
            'Body': data,
            'Metadata': metadata,
            'ServerSideEncryption': 'AES256',
        }
        if content_type:
            upload_params['ContentType'] = content_type

        try:
            self.s3_client.put_object(**upload_params)
        except ClientError as e:
            error_code = e.response['Error']['Code']
            logger.error(f"S3 upload failed for {key}: {error_code} - {e}")
            raise
        except BotoCoreError as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise

        logger.info(f"Stored certification document {file_name} as {key} ({len(data)} bytes)")
        return self.url_for(key)
