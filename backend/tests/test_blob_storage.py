import pytest

from shopfloor.errors import ConfigurationError
from shopfloor.services.blob_storage import BlobStorage
from shopfloor.validation import ValidationError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def storage(app, tmp_path):
    storage = BlobStorage(tmp_path, "product-images", "/media", max_bytes=1024)
    storage.provision()
    return storage


def test_upload_keeps_extension_and_lists(storage):
    url = storage.upload(PNG, "photo.PNG", "image/png")

    assert url.startswith("/media/product-images/")
    assert url.endswith(".png")
    name = url.rsplit("/", 1)[-1]
    assert storage.list() == [name]


def test_upload_names_are_unique(storage):
    first = storage.upload(PNG, "a.png", "image/png")
    second = storage.upload(PNG, "a.png", "image/png")
    assert first != second


def test_rejects_non_images_and_large_files(storage):
    with pytest.raises(ValidationError):
        storage.upload(b"%PDF-1.4", "doc.pdf", "application/pdf")
    with pytest.raises(ValidationError):
        storage.upload(b"x" * 2048, "big.png", "image/png")
    assert storage.list() == []


def test_delete(storage):
    url = storage.upload(PNG, "a.png", "image/png")

    assert storage.delete(url) is True
    assert storage.delete(url) is False
    assert storage.list() == []


def test_missing_container_is_configuration_error():
    with pytest.raises(ConfigurationError):
        BlobStorage(None, "product-images", "/media")


def test_unprovisioned_container_is_configuration_error(app, tmp_path):
    storage = BlobStorage(tmp_path / "mistyped-dir", "product-images", "/media")

    with pytest.raises(ConfigurationError):
        storage.upload(PNG, "a.png", "image/png")
    with pytest.raises(ConfigurationError):
        storage.list()
    with pytest.raises(ConfigurationError):
        storage.delete("/media/product-images/a.png")

    assert not (tmp_path / "mistyped-dir").exists()


def test_provision_creates_container(app, tmp_path):
    storage = BlobStorage(tmp_path / "blobs", "product-images", "/media")
    assert storage.is_provisioned() is False

    storage.provision()

    assert storage.is_provisioned() is True
    assert storage.list() == []


def test_from_app_uses_five_megabyte_default(app):
    storage = BlobStorage.from_app()
    assert storage.max_bytes == 5 * 1024 * 1024
