# sheetkeeper/__init__.py
import os
import logging
from flask import Flask, jsonify

from .db import db
from flask_migrate import Migrate
migrate = Migrate()

from .auth import auth_bp, limiter, login_manager
from .errors import register_error_handlers
from .api.accounts import bp as accounts_api_bp
from .api.characters import bp as characters_api_bp
from .api.items import bp as items_api_bp
from .api.item_properties import bp as item_properties_api_bp
from .api.skills import bp as skills_api_bp
from .api.spells import bp as spells_api_bp

DEFAULT_TOKEN_TTL = 60 * 60 * 8


def create_app(test_config=None):
    app = Flask(__name__)

    BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    DB_PATH = os.path.join(BASE_DIR, "sheetkeeper.db")
    DB_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    app.config.update(
        SECRET_KEY=os.environ.get("SECRET_KEY", "dev"),
        SQLALCHEMY_DATABASE_URI=DB_URI,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SESSION_COOKIE_SAMESITE="Lax",
        AUTO_CREATE_TABLES=os.environ.get("AUTO_CREATE_TABLES", "1") == "1",
        TOKEN_TTL=int(os.environ.get("TOKEN_TTL", DEFAULT_TOKEN_TTL)),
        BOOTSTRAP_ADMIN=os.environ.get("BOOTSTRAP_ADMIN", "1") == "1",
        ADMIN_USERNAME=os.environ.get("ADMIN_USERNAME", "DM"),
        ADMIN_PASSWORD=os.environ.get("ADMIN_PASSWORD", "DM"),
        RATELIMIT_STORAGE_URI=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
    )
    if test_config:
        app.config.update(test_config)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    register_error_handlers(app)

    # Helpful startup log
    app.logger.setLevel(logging.INFO)
    app.logger.info("DB URI: %s", app.config["SQLALCHEMY_DATABASE_URI"])
    app.logger.info("AUTO_CREATE_TABLES=%s", app.config["AUTO_CREATE_TABLES"])

    with app.app_context():
        # Ensure all models are imported so metadata is complete
        from . import models as _models  # noqa: F401

        if app.config["AUTO_CREATE_TABLES"]:
            db.create_all()
            if app.config["BOOTSTRAP_ADMIN"]:
                from .services.accounts import ensure_admin_account
                acct, created = ensure_admin_account(
                    app.config["ADMIN_USERNAME"], app.config["ADMIN_PASSWORD"]
                )
                app.logger.info("admin account %s: %s", acct.username, "created" if created else "present")

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(accounts_api_bp)
    app.register_blueprint(characters_api_bp)
    app.register_blueprint(items_api_bp)
    app.register_blueprint(item_properties_api_bp)
    app.register_blueprint(skills_api_bp)
    app.register_blueprint(spells_api_bp)

    @app.get("/healthz")
    def healthz():
        return jsonify(ok=True)

    return app
