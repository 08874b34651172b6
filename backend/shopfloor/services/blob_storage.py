# Overview: Product image container on the local filesystem, served under a public base URL.

from __future__ import annotations

import os
import secrets
import time
from pathlib import Path

from flask import current_app
from werkzeug.utils import secure_filename

from ..validation import ValidationError
from ..errors import ConfigurationError, StorageError

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class BlobStorage:
    """
    Named container of image objects.

    Objects live in <root>/<container>/<name>; their public URL is
    <public_base_url>/<container>/<name>.
    """

    def __init__(self, root: str | os.PathLike | None, container: str, public_base_url: str,
                 max_bytes: int = DEFAULT_MAX_BYTES):
        if not root:
            raise ConfigurationError("BLOB_CONTAINER_DIR is not configured")
        if not container:
            raise ConfigurationError("BLOB_CONTAINER_NAME is not configured")
        self.container = container
        self.path = Path(root) / container
        self.public_base_url = public_base_url.rstrip("/")
        self.max_bytes = max_bytes

    @classmethod
    def from_app(cls) -> "BlobStorage":
        cfg = current_app.config
        return cls(
            cfg.get("BLOB_CONTAINER_DIR"),
            cfg.get("BLOB_CONTAINER_NAME", "product-images"),
            cfg.get("BLOB_PUBLIC_BASE_URL", "/media"),
            cfg.get("MAX_IMAGE_BYTES", DEFAULT_MAX_BYTES),
        )

    def provision(self) -> None:
        """Create the container directory (flask system init-db / reset-db)."""
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(f"Blob container {self.path} could not be created: {exc}") from exc

    def is_provisioned(self) -> bool:
        return self.path.is_dir()

    def _ensure_container(self) -> None:
        # A missing directory means a mistyped or unprovisioned container
        if not self.is_provisioned():
            raise ConfigurationError(f"Blob container {self.path} is not provisioned")

    def validate(self, data: bytes, content_type: str | None) -> None:
        if not content_type or not content_type.lower().startswith("image/"):
            raise ValidationError("File must be an image (JPG, PNG, GIF, ...)")
        if len(data) > self.max_bytes:
            raise ValidationError(f"Image must not exceed {self.max_bytes // (1024 * 1024)} MB")
        if not data:
            raise ValidationError("File is empty")

    @staticmethod
    def generate_name(original_name: str | None) -> str:
        """<millis>-<random>.<ext>, keeping the original extension."""
        safe = secure_filename(original_name or "")
        ext = safe.rsplit(".", 1)[-1].lower() if "." in safe else "bin"
        return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"

    def url_for(self, name: str) -> str:
        return f"{self.public_base_url}/{self.container}/{name}"

    def name_from_url(self, url: str) -> str:
        name = secure_filename((url or "").rstrip("/").rsplit("/", 1)[-1])
        if not name:
            raise ValidationError("Not an object URL")
        return name

    def upload(self, data: bytes, filename: str | None, content_type: str | None) -> str:
        """Store the image under a fresh unique name and return its public URL."""
        self.validate(data, content_type)
        self._ensure_container()
        name = self.generate_name(filename)
        try:
            (self.path / name).write_bytes(data)
        except OSError as exc:
            current_app.logger.warning("Blob upload to %s failed: %s", self.path, exc)
            raise StorageError(f"Could not store image: {exc}", failed_step="upload_blob") from exc
        return self.url_for(name)

    def delete(self, url: str) -> bool:
        self._ensure_container()
        name = self.name_from_url(url)
        target = self.path / name
        if not target.exists():
            return False
        try:
            target.unlink()
        except OSError as exc:
            raise StorageError(f"Could not delete image: {exc}", failed_step="delete_blob") from exc
        return True

    def list(self) -> list[str]:
        self._ensure_container()
        return sorted(p.name for p in self.path.iterdir() if p.is_file())

    def open_path(self, name: str) -> Path:
        """Filesystem path of an existing object (for serving)."""
        target = self.path / secure_filename(name)
        if not target.is_file():
            raise FileNotFoundError(name)
        return target
