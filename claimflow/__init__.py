"""Application factory and extension initialization for ClaimFlow."""
from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_login import LoginManager
from flask_mail import Mail
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect

from config import config_by_name

# Global extension instances -------------------------------------------------

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
mail = Mail()


def create_app(config_name: Optional[str] = None) -> Flask:
    """Flask application factory."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    config_name = config_name or os.getenv("FLASK_CONFIG", "development")
    config_class = config_by_name.get(config_name.lower())
    if config_class is None:
        raise ValueError(f"Unknown Flask configuration '{config_name}'")

    app.config.from_object(config_class)
    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    # Ensure instance folder exists for SQLite DBs
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    mail.init_app(app)

    from claimflow.services.email_service import init_email_service
    init_email_service(mail)

    # Stage table is validated here; a bad APPROVAL_STAGES aborts startup
    from claimflow.services.stage_table import StageTable
    app.extensions["claimflow_stages"] = StageTable.from_config(app.config.get("APPROVAL_STAGES"))

    # Register blueprints
    from claimflow.approvals import approvals_bp
    from claimflow.bulk import bulk_bp
    from claimflow.employee import employee_bp

    app.register_blueprint(approvals_bp)
    app.register_blueprint(bulk_bp)
    app.register_blueprint(employee_bp)

    # JSON API authenticated by session cookie; there are no forms to carry a token
    for blueprint in (approvals_bp, bulk_bp, employee_bp):
        csrf.exempt(blueprint)

    # Import all models to ensure they are registered with SQLAlchemy
    from claimflow.models import AuditLog, Claim, Notification, User

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[User]:
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from claimflow.utils.helpers import json_response
        return json_response({"success": False, "error": "Authentication required."}, status=401)

    with app.app_context():
        db.create_all()

    @app.shell_context_processor
    def shell_context():
        return {"db": db, "User": User, "Claim": Claim, "Notification": Notification, "AuditLog": AuditLog}

    return app
