# backend/shopfloor/config.py
from __future__ import annotations
import os

from .errors import ConfigurationError


class Config:
    # Both are mandatory; create_app() refuses to start without them.
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Product image container (local directory served under BLOB_PUBLIC_BASE_URL)
    BLOB_CONTAINER_NAME = os.environ.get("BLOB_CONTAINER_NAME", "product-images")
    BLOB_CONTAINER_DIR = os.environ.get("BLOB_CONTAINER_DIR")
    BLOB_PUBLIC_BASE_URL = os.environ.get("BLOB_PUBLIC_BASE_URL", "/media")
    MAX_IMAGE_BYTES = int(os.environ.get("MAX_IMAGE_BYTES", 5 * 1024 * 1024))


REQUIRED_SETTINGS = {
    "SQLALCHEMY_DATABASE_URI": "DATABASE_URL",
    "SECRET_KEY": "SECRET_KEY",
}


def validate_config(config) -> None:
    """
    Fail fast on missing mandatory settings.

    The database endpoint and the secret credential have no defaults: running
    without them is a deployment mistake, not something to recover from.
    """
    missing = [env for key, env in REQUIRED_SETTINGS.items() if not config.get(key)]
    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(sorted(missing))}"
        )
