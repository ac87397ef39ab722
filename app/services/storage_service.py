"""Storage service for uploaded files (shop logos) - S3 or local filesystem."""
import base64
import binascii
import io
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from PIL import Image, UnidentifiedImageError

from app.errors import ValidationError
from app.models import Config

ALLOWED_LOGO_FORMATS = {'PNG', 'JPEG', 'GIF', 'WEBP'}


@dataclass
class S3Config:
    """S3 configuration."""
    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    enabled: bool = False


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> str:
        """Upload file, return URL/path."""

    @abstractmethod
    def download(self, key: str) -> Optional[bytes]:
        """Download file content. Returns None if not found."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if file exists."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete file. Returns True if deleted."""


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Get full path for key, refusing keys outside the base path."""
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path.resolve()):
            raise ValidationError('Ungültiger Dateipfad')
        return path

    def upload(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> str:
        """Upload file to local filesystem."""
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return str(path)

    def download(self, key: str) -> Optional[bytes]:
        """Download file from local filesystem."""
        path = self._get_path(key)
        if path.exists():
            return path.read_bytes()
        return None

    def exists(self, key: str) -> bool:
        """Check if file exists locally."""
        return self._get_path(key).exists()

    def delete(self, key: str) -> bool:
        """Delete file from local filesystem."""
        path = self._get_path(key)
        if path.exists():
            path.unlink()
            return True
        return False


class S3Storage(StorageBackend):
    """S3-compatible storage backend (Hetzner Object Storage, AWS S3, MinIO)."""

    def __init__(self, config: S3Config):
        self.config = config
        self.client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
        )
        self.bucket = config.bucket

    def upload(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> str:
        """Upload file to S3."""
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type
        )
        return f"s3://{self.bucket}/{key}"

    def download(self, key: str) -> Optional[bytes]:
        """Download file from S3."""
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response['Body'].read()
        except ClientError as e:
            if e.response['Error']['Code'] == 'NoSuchKey':
                return None
            raise

    def exists(self, key: str) -> bool:
        """Check if file exists in S3."""
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == '404':
                return False
            raise

    def delete(self, key: str) -> bool:
        """Delete file from S3."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError:
            return False


class StorageService:
    """
    Storage service with automatic backend selection.

    Uses S3 if configured and enabled, otherwise falls back to local filesystem.
    """

    def __init__(self):
        self._backend: Optional[StorageBackend] = None

    def _load_config(self) -> S3Config:
        """Load S3 config from database."""
        def decode_password(password_b64: str) -> str:
            """Decode Base64 secret, plain values are used as they are."""
            if not password_b64:
                return ''
            try:
                return base64.b64decode(password_b64, validate=True).decode('utf-8')
            except (binascii.Error, UnicodeDecodeError):
                return password_b64

        return S3Config(
            endpoint=Config.get_value('s3_endpoint', ''),
            access_key=Config.get_value('s3_access_key', ''),
            secret_key=decode_password(Config.get_value('s3_secret_key', '')),
            bucket=Config.get_value('s3_bucket', 'handyshop-logos'),
            enabled=Config.get_value('s3_enabled', 'false').lower() == 'true'
        )

    def _get_backend(self) -> StorageBackend:
        """Get or create storage backend."""
        if self._backend is None:
            config = self._load_config()

            if config.enabled and config.endpoint and config.access_key:
                try:
                    backend = S3Storage(config)
                    # Test connection
                    backend.client.head_bucket(Bucket=config.bucket)
                    self._backend = backend
                except (BotoCoreError, ClientError) as e:
                    current_app.logger.warning(f"S3 connection failed, falling back to local: {e}")
                    self._backend = self._get_local_backend()
            else:
                self._backend = self._get_local_backend()

        return self._backend

    def _get_local_backend(self) -> LocalStorage:
        """Get local storage backend."""
        return LocalStorage(current_app.config['UPLOAD_DIR'])

    # Delegate methods to backend

    def upload(self, key: str, data: bytes, content_type: str = 'application/octet-stream') -> str:
        """Upload file."""
        return self._get_backend().upload(key, data, content_type)

    def download(self, key: str) -> Optional[bytes]:
        """Download file content."""
        return self._get_backend().download(key)

    def exists(self, key: str) -> bool:
        """Check if file exists."""
        return self._get_backend().exists(key)

    def delete(self, key: str) -> bool:
        """Delete file."""
        return self._get_backend().delete(key)

    def get_logo_key(self, shop_id: int) -> str:
        """Get storage key for a new logo of a shop."""
        stamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S')
        return f"logos/shop_{shop_id}/{stamp}_{uuid.uuid4().hex[:8]}.png"

    def process_logo(self, data: bytes) -> bytes:
        """Validate an uploaded logo and convert it to a size-limited PNG.

        Raises:
            ValidationError: If the file is too large or not a supported image
        """
        if not data:
            raise ValidationError('Leere Datei')
        if len(data) > current_app.config['LOGO_MAX_BYTES']:
            raise ValidationError('Logo ist zu groß (max. 2 MB)')
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
            image = Image.open(io.BytesIO(data))
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise ValidationError('Datei ist kein gültiges Bild')
        if image.format not in ALLOWED_LOGO_FORMATS:
            raise ValidationError('Erlaubte Formate: PNG, JPEG, GIF, WEBP')

        image = image.convert('RGBA')
        image.thumbnail(current_app.config['LOGO_MAX_SIZE'])
        output = io.BytesIO()
        image.save(output, format='PNG', optimize=True)
        return output.getvalue()

    def save_logo(self, shop_id: int, data: bytes) -> str:
        """Store a processed logo. Returns its storage key."""
        key = self.get_logo_key(shop_id)
        self.upload(key, self.process_logo(data), 'image/png')
        return key


# Shared storage service instance
_storage = None


def get_storage() -> StorageService:
    """Get or create storage service instance."""
    global _storage
    if _storage is None:
        _storage = StorageService()
    return _storage
