import boto3
from botocore.exceptions import ClientError
from typing import Optional
import os
from datetime import datetime, timezone
from freight_recon.config import settings
from freight_recon.models.file import File
from freight_recon.services.document_store import DocumentStore
import logging

logger = logging.getLogger(__name__)

FILE_TYPE_FOLDERS = {
    "invoice_pdf": "invoices",
    "pod": "pods",
    "po_pdf": "purchase-orders",
    "bol_pdf": "bills-of-lading",
    "other": "other",
}

CONTENT_TYPES = {
    'pdf': 'application/pdf',
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'tiff': 'image/tiff',
    'tif': 'image/tiff',
}


class StorageError(Exception):
    """Raised when a document file cannot be stored or read back"""


class StorageService:
    """Object storage (S3-compatible) for scanned freight documents, with a local fallback"""

    def __init__(self, local_storage_dir: Optional[str] = None):
        self.bucket_name = settings.storage_bucket_name

        # Require both access key and secret key to use S3
        if settings.storage_access_key_id and settings.storage_secret_access_key:
            s3_config = {
                'aws_access_key_id': settings.storage_access_key_id,
                'aws_secret_access_key': settings.storage_secret_access_key,
            }
            if settings.storage_endpoint_url:
                s3_config['endpoint_url'] = settings.storage_endpoint_url
            if settings.storage_region:
                s3_config['region_name'] = settings.storage_region

            try:
                self.s3_client = boto3.client('s3', **s3_config)
                logger.info("S3 storage initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize S3 client, falling back to local storage: {str(e)}")
                self.s3_client = None
        else:
            logger.info("No S3 credentials found, using local filesystem storage")
            self.s3_client = None

        self.local_storage_dir = os.path.abspath(local_storage_dir or settings.local_storage_dir)
        if self.s3_client is None:
            os.makedirs(self.local_storage_dir, exist_ok=True)
            logger.info(f"Local storage directory initialized: {self.local_storage_dir}")

    def _get_content_type(self, filename: str) -> str:
        ext = filename.lower().split('.')[-1] if '.' in filename else ''
        return CONTENT_TYPES.get(ext, 'application/octet-stream')

    def _local_path(self, storage_key: str) -> str:
        return os.path.join(self.local_storage_dir, *storage_key.split('/'))

    def upload_file(self, file_content: bytes, filename: str, file_type: str = "other") -> str:
        """
        Upload a document scan and return its storage key

        Args:
            file_content: Binary content of the file
            filename: Original filename
            file_type: invoice_pdf, pod, po_pdf, bol_pdf or other

        Returns:
            Storage key, the same format for S3 and local storage
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        folder = FILE_TYPE_FOLDERS.get(file_type, "other")
        safe_name = os.path.basename(filename) or "upload"
        storage_key = f"{folder}/{timestamp}_{safe_name}"

        if self.s3_client:
            try:
                self.s3_client.put_object(
                    Bucket=self.bucket_name,
                    Key=storage_key,
                    Body=file_content,
                    ContentType=self._get_content_type(filename),
                )
                return storage_key
            except ClientError as e:
                raise StorageError(f"Failed to upload to S3: {str(e)}")

        local_path = self._local_path(storage_key)
        try:
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
            with open(local_path, 'wb') as f:
                f.write(file_content)
        except OSError as e:
            logger.error(f"Failed to save file to local storage: {str(e)}")
            raise StorageError(f"Failed to save file: {str(e)}")
        logger.info(f"File saved to local storage: {local_path}")
        return storage_key

    def download_file(self, storage_key: str) -> bytes:
        if self.s3_client:
            try:
                response = self.s3_client.get_object(Bucket=self.bucket_name, Key=storage_key)
                return response['Body'].read()
            except ClientError as e:
                raise StorageError(f"Failed to download from S3: {str(e)}")

        local_path = self._local_path(storage_key)
        if not os.path.exists(local_path):
            raise FileNotFoundError(f"File not found: {storage_key}")
        with open(local_path, 'rb') as f:
            return f.read()

    def save_document_file(
        self, store: DocumentStore, file_content: bytes, filename: str, mime_type: Optional[str], file_type: str
    ) -> File:
        """Store the bytes and record their metadata row"""
        storage_key = self.upload_file(file_content, filename, file_type)
        record = File(
            filename=filename,
            mime_type=mime_type or self._get_content_type(filename),
            size_bytes=len(file_content),
            storage_path=storage_key,
            file_type=file_type,
        )
        return store.insert("file", record)


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """FastAPI dependency returning the shared storage service"""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
