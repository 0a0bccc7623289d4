# -*- coding: utf-8 -*-
import logging
from datetime import date, datetime
from decimal import Decimal

from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider

from .config import Config, ensure_instance
from .extensions import db, migrate, login_manager
from .errors import Forbidden, NotFound, StoreUnavailable, ValidationError

# блюпринты
from .modules.ledger import bp as ledger_bp
from .modules.admin import bp as admin_bp


class LedgerJSONProvider(DefaultJSONProvider):
    """Суммы — строкой с двумя знаками, даты — ISO-8601."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.json = LedgerJSONProvider(app)
    app.config.from_object(config_object or Config)
    ensure_instance(app)

    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    app.logger.setLevel(level)
    logging.getLogger("debtbook").setLevel(level)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # модели должны быть импортированы до create_all / миграций
    from . import models  # noqa: F401

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "unauthorized"}), 401

    # --- ошибки учёта -> JSON ---
    @app.errorhandler(ValidationError)
    def on_validation(e: ValidationError):
        return jsonify({"error": "validation", "field": e.field, "reason": e.reason}), 422

    @app.errorhandler(Forbidden)
    def on_forbidden(e: Forbidden):
        role = getattr(e.required_role, "value", e.required_role)
        return jsonify({"error": "forbidden", "required_role": role}), 403

    @app.errorhandler(NotFound)
    def on_not_found(e: NotFound):
        return jsonify({"error": "not_found", "resource": e.resource}), 404

    @app.errorhandler(StoreUnavailable)
    def on_unavailable(e: StoreUnavailable):
        app.logger.warning("store unavailable: %s", e.operation)
        resp = jsonify({"error": "store_unavailable", "operation": e.operation})
        resp.status_code = 503
        resp.headers["Retry-After"] = "5"
        return resp

    # --- блюпринты ---
    app.register_blueprint(ledger_bp)
    app.register_blueprint(admin_bp)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app
