# backend/app.py
from __future__ import annotations

import os

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_cors import CORS

from config import Config
from db import db, migrate
from errors import AppError

# Ensure models are imported so Flask-Migrate sees them
from models.account import Account, KINDS

# Blueprints
from routes.auth import auth_bp
from routes.accounts import alumni_bp, teachers_bp
from routes.admin import admin_bp


def _check_required_config(app: Flask) -> None:
    """Refuse to start without a signing secret and a super-admin identity."""
    missing = [k for k in ("JWT_SECRET", "SUPER_ADMIN_EMAIL") if not app.config.get(k)]
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    app.config["SUPER_ADMIN_EMAIL"] = app.config["SUPER_ADMIN_EMAIL"].strip().lower()


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)

    # Respect reverse proxy headers (scheme / host) for correct URL generation
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[arg-type]

    CORS(app, resources={r"/api/*": {"origins": os.environ.get("CORS_ORIGINS", "*")}})

    # Load config + init extensions
    app.config.from_object(config_object)
    _check_required_config(app)
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        # Touch models so Alembic/Flask-Migrate registers them
        _ = (Account,)

    # Health check
    @app.route("/")
    def health_check():
        return jsonify(status="ok"), 200

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify(error="Not Found", path=request.path), 404

    @app.errorhandler(AppError)
    def handle_app_error(e: AppError):
        if e.status_code >= 500:
            app.logger.error("[app] %s %s -> %s: %s", request.method, request.path, e.status_code, e.message)
        return jsonify(error=e.message), e.status_code

    # Global error handler
    @app.errorhandler(Exception)
    def handle_any_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify(error=e.description), e.code
        db.session.rollback()
        app.logger.exception("[app] unhandled error on %s %s", request.method, request.path)
        return jsonify(error="Internal server error"), 500

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(alumni_bp,   url_prefix="/api/alumni")
    app.register_blueprint(teachers_bp, url_prefix="/api/teachers")
    app.register_blueprint(admin_bp)

    # CLI: mint a bearer token for an existing account (operator tooling)
    @app.cli.command("issue-token")
    @click.argument("email")
    @click.option("--kind", type=click.Choice(KINDS), default=None, help="Account kind; alumni first if omitted.")
    def issue_token_cmd(email, kind):
        from services.accounts import find_account
        from services.tokens import issue_token

        account = find_account(email, kind)
        if account is None:
            raise click.ClickException(f"No account for {email}")
        click.echo(issue_token(account))

    return app


# Optional local entrypoint (useful for quick dev runs)
if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        debug=bool(os.environ.get("FLASK_DEBUG", "")),
    )
