### app/utils/s3_utils.py

# Standard library imports
import os
from dataclasses import dataclass
from typing import Optional

# Third party imports
import boto3
from botocore.exceptions import BotoCoreError, ClientError

# Local imports
from app.core.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".json": "application/json",
    ".txt": "text/plain",
    ".png": "image/png",
}


class StorageError(Exception):
    """Raised when an object cannot be stored."""


@dataclass
class StoredObject:
    """Location of an uploaded object"""
    url: str
    id: str


class ObjectStorage:
    """Object storage backed by S3"""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client=None,
    ):
        """Initialize S3 client with AWS credentials"""
        self.s3_client = client or boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
        )
        self.bucket_name = bucket_name or settings.s3_bucket_name
        self.public_base_url = public_base_url or settings.s3_public_base_url

    def object_url(self, key: str) -> str:
        """Public URL of a stored object"""
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{key}"

    def upload(self, data: bytes, key: str, content_type: Optional[str] = None) -> StoredObject:
        """
        Upload bytes to S3

        Args:
            data: Object content
            key: S3 key (path) where the object will be stored
            content_type: Optional content type, guessed from the key otherwise

        Returns:
            StoredObject: URL and key of the stored object

        Raises:
            StorageError: If the bucket is not configured or the upload fails
        """
        if not self.bucket_name:
            raise StorageError("Object storage is not configured: S3_BUCKET_NAME is missing")

        content_type = content_type or CONTENT_TYPES.get(
            os.path.splitext(key)[1], "application/octet-stream"
        )
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error uploading object to S3", key=key, error_message=str(e))
            raise StorageError(f"Failed to upload {key}: {e}") from e

        logger.info("Uploaded object to S3", key=key, size=len(data))
        return StoredObject(url=self.object_url(key), id=key)
