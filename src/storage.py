"""
Storage abstraction layer for uploaded files.
Supports both local filesystem (development) and S3 (production).

Property media lands under {property_public_id}/{media_type}/..., builder
documents under {builder_public_id}/documents/...
"""

import os
import re
import time
from pathlib import Path
from typing import Optional, BinaryIO, Tuple
from abc import ABC, abstractmethod
import boto3
from botocore.exceptions import ClientError
import logging

logger = logging.getLogger(__name__)


IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
VIDEO_TYPES = ("video/mp4", "video/avi", "video/mov", "video/quicktime", "video/wmv")
DOC_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
SHEET_TYPES = (
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)

# property media type -> accepted MIME types
MEDIA_MIME_TYPES = {
    "image": IMAGE_TYPES,
    "video": VIDEO_TYPES,
    "document": DOC_TYPES,
    "brochure": DOC_TYPES,
    "floor_plan": IMAGE_TYPES + DOC_TYPES,
}
BUILDER_DOCUMENT_MIME_TYPES = DOC_TYPES + IMAGE_TYPES + SHEET_TYPES

MAX_MEDIA_BYTES = 50 * 1024 * 1024
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

FOLDER_MAP = {
    "image": "images",
    "video": "videos",
    "document": "documents",
    "floor_plan": "floor-plans",
    "brochure": "brochures",
}


class UploadRejected(ValueError):
    """Raised when an upload fails the type or size checks."""
    pass


def check_media_upload(media_type: str, content_type: Optional[str], size: int) -> None:
    allowed = MEDIA_MIME_TYPES.get(media_type)
    if allowed is None:
        raise UploadRejected("Invalid media type")
    if content_type not in allowed:
        raise UploadRejected(f"Invalid file type for {media_type}. Allowed types: {', '.join(allowed)}")
    if size > MAX_MEDIA_BYTES:
        raise UploadRejected("File too large. Maximum size is 50MB")


def check_document_upload(content_type: Optional[str], size: int) -> None:
    if content_type not in BUILDER_DOCUMENT_MIME_TYPES:
        raise UploadRejected(f"Invalid file type. Allowed types: {', '.join(BUILDER_DOCUMENT_MIME_TYPES)}")
    if size > MAX_DOCUMENT_BYTES:
        raise UploadRejected("File too large. Maximum size is 10MB")


def safe_filename(owner_id: str, filename: str) -> str:
    """'Floor Plan (A).pdf' -> 'PRP-1-X_1700000000000_Floor_Plan__A_.pdf'"""
    stem, ext = os.path.splitext(filename or "file")
    stem = re.sub(r"[^a-zA-Z0-9]", "_", stem) or "file"
    return f"{owner_id}_{int(time.time() * 1000)}_{stem}{ext.lower()}"


def generate_organized_path(
    owner_id: Optional[str],
    entity_field: Optional[str],
    filename: str
) -> str:
    """
    Generate organized storage path structure:
    {owner_id}/{folder}/{filename}

    Examples:
    - PRP-123/images/PRP-123_1700000000000_front.jpg
    - BLD-456/documents/BLD-456_1700000000000_license.pdf
    """
    parts = []

    if owner_id:
        parts.append(owner_id)

    if entity_field:
        parts.append(FOLDER_MAP.get(entity_field, entity_field))

    parts.append(filename)

    return '/'.join(parts)


class StorageBackend(ABC):
    """Abstract base class for storage backends"""

    @abstractmethod
    async def save(
        self,
        file_data: BinaryIO,
        filename: str,
        content_type: str,
        owner_id: Optional[str] = None,
        entity_field: Optional[str] = None
    ) -> Tuple[str, str]:
        """
        Save file and return (storage_path, access_url)

        Args:
            file_data: Binary file data
            filename: Stored filename
            content_type: MIME type
            owner_id: Public ID of the owning property or builder
            entity_field: Media type or "documents"
        """
        pass

    @abstractmethod
    async def delete(self, storage_path: str) -> bool:
        """
        Delete file from storage
        """
        pass

    @abstractmethod
    def get_url(self, storage_path: str) -> str:
        """
        Get access URL for file
        """
        pass


class LocalFileStorage(StorageBackend):
    """Local filesystem storage for development"""

    def __init__(self, base_dir: str = "uploads", base_url: str = "http://localhost:8000"):
        self.base_dir = Path(base_dir)
        self.base_url = base_url.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"LocalFileStorage initialized: base_dir={self.base_dir}, base_url={self.base_url}")

    async def save(
        self,
        file_data: BinaryIO,
        filename: str,
        content_type: str,
        owner_id: Optional[str] = None,
        entity_field: Optional[str] = None
    ) -> Tuple[str, str]:
        storage_path = generate_organized_path(owner_id, entity_field, filename)

        file_path = self.base_dir / storage_path
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'wb') as f:
            f.write(file_data.read())

        access_url = self.get_url(storage_path)
        logger.info(f"Saved file locally: {storage_path} -> {access_url}")

        return storage_path, access_url

    async def delete(self, storage_path: str) -> bool:
        """Delete file from local filesystem"""
        try:
            file_path = self.base_dir / storage_path
            if file_path.exists():
                file_path.unlink()
                logger.info(f"Deleted file: {storage_path}")
                return True
            else:
                logger.warning(f"File not found for deletion: {storage_path}")
                return False
        except OSError as e:
            logger.error(f"Error deleting file {storage_path}: {e}")
            return False

    def get_url(self, storage_path: str) -> str:
        return f"{self.base_url}/uploads/{storage_path}"


class S3Storage(StorageBackend):
    """AWS S3/MinIO storage for production"""

    def __init__(
        self,
        bucket_name: str,
        aws_access_key: Optional[str] = None,
        aws_secret_key: Optional[str] = None,
        region: str = "ap-south-1",
        endpoint_url: Optional[str] = None,  # For MinIO compatibility
        public_base_url: Optional[str] = None
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = public_base_url
        self.endpoint_url = endpoint_url

        session = boto3.session.Session()
        self.s3_client = session.client(
            's3',
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=aws_access_key,
            aws_secret_access_key=aws_secret_key
        )

        logger.info(f"S3Storage initialized: bucket={bucket_name}, endpoint={endpoint_url}")

    async def save(
        self,
        file_data: BinaryIO,
        filename: str,
        content_type: str,
        owner_id: Optional[str] = None,
        entity_field: Optional[str] = None
    ) -> Tuple[str, str]:
        storage_path = generate_organized_path(owner_id, entity_field, filename)

        try:
            self.s3_client.upload_fileobj(
                file_data,
                self.bucket_name,
                storage_path,
                ExtraArgs={
                    'ContentType': content_type,
                    'ACL': 'public-read'
                }
            )
        except ClientError as e:
            logger.error(f"Error uploading to S3/MinIO: {e}")
            raise

        access_url = self.get_url(storage_path)
        logger.info(f"Uploaded to S3/MinIO: {storage_path} -> {access_url}")
        return storage_path, access_url

    async def delete(self, storage_path: str) -> bool:
        """Delete file from S3"""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_path)
            logger.info(f"Deleted from S3: {storage_path}")
            return True
        except ClientError as e:
            logger.error(f"Error deleting from S3: {e}")
            return False

    def get_url(self, storage_path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{storage_path}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{storage_path}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{storage_path}"


def get_storage_backend() -> StorageBackend:
    """
    Get appropriate storage backend based on environment configuration.
    STORAGE_TYPE is "local" (default) or "s3".
    """
    storage_type = os.getenv("STORAGE_TYPE", "local")

    if storage_type == "s3":
        return S3Storage(
            bucket_name=os.getenv("S3_BUCKET_NAME", "zuhaush-media"),
            aws_access_key=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            region=os.getenv("AWS_REGION", "ap-south-1"),
            endpoint_url=os.getenv("S3_ENDPOINT_URL"),
            public_base_url=os.getenv("S3_PUBLIC_BASE_URL")
        )
    return LocalFileStorage(
        base_dir=os.getenv("UPLOAD_DIR", "uploads"),
        base_url=os.getenv("BASE_URL", "http://localhost:8000")
    )
