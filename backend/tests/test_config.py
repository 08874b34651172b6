import pytest

from shopfloor import create_app
from shopfloor.errors import ConfigurationError


def test_missing_database_url_is_fatal():
    with pytest.raises(ConfigurationError) as exc:
        create_app({"SQLALCHEMY_DATABASE_URI": None, "SECRET_KEY": "s"})
    assert "DATABASE_URL" in str(exc.value)


def test_missing_secret_key_is_fatal():
    with pytest.raises(ConfigurationError) as exc:
        create_app({"SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:", "SECRET_KEY": ""})
    assert "SECRET_KEY" in str(exc.value)


def test_complete_config_builds_app():
    app = create_app({"SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:", "SECRET_KEY": "s"})
    assert "cart" in app.blueprints
