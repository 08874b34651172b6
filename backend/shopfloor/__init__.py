# backend/shopfloor/__init__.py
from flask import Flask

from .config import Config, validate_config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    """
    Build the application.

    test_config overrides the environment-derived Config (used by tests).
    Raises ConfigurationError when DATABASE_URL or SECRET_KEY is missing.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    validate_config(app.config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp, categories_bp
    from .routes.inventory import inventory_bp
    from .routes.suppliers import suppliers_bp
    from .routes.cart import cart_bp
    from .routes.sales import sales_bp
    from .routes.imports import imports_bp
    from .routes.stores import stores_bp
    from .routes.users import users_bp
    from .routes.vat import vat_bp
    from .routes.media import media_bp, media_files_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(imports_bp)
    app.register_blueprint(stores_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(vat_bp)
    app.register_blueprint(media_bp)
    app.register_blueprint(media_files_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
