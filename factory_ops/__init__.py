import os

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from factory_ops.application.procurement_service import ProcurementService
from factory_ops.application.stock_service import StockService
from factory_ops.config import Config
from factory_ops.db import close_db, get_db, init_db
from factory_ops.db_migrations import register_db_cli
from factory_ops.errors import AppError, SystemError
from factory_ops.notifications import NotificationService, build_email_sender
from factory_ops.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
)


def create_app(config_class=Config, *, email_sender=None, clock=None):
    """Build the back-office API.

    ``email_sender`` and ``clock`` replace the configured transport and the
    UTC wall clock, which is how the test suite drives the workflow.
    """
    if isinstance(config_class, type):
        # Instantiating runs the production guard in Config.__init__.
        config_class()
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    database_dir = app.config.get("DATABASE_DIR")
    if database_dir:
        os.makedirs(database_dir, exist_ok=True)

    _register_services(app, email_sender=email_sender, clock=clock)
    _register_request_hooks(app)
    _register_error_handlers(app)
    _register_blueprints(app)
    _register_health(app)
    register_db_cli(app)
    app.teardown_appcontext(close_db)

    if _should_auto_init(app):
        with app.app_context():
            init_db()
    return app


def _should_auto_init(app: Flask) -> bool:
    if app.testing:
        return True
    if not app.config.get("DB_AUTO_INIT"):
        return False
    flask_env = (os.environ.get("FLASK_ENV") or "development").strip().lower()
    if flask_env != "development":
        app.logger.warning("DB_AUTO_INIT ignorado fora de development.")
        return False
    return True


def _register_services(app: Flask, *, email_sender=None, clock=None) -> None:
    notifications = NotificationService(email_sender or build_email_sender(app.config))
    app.extensions["factory_ops.notifications"] = notifications
    app.extensions["factory_ops.procurement"] = ProcurementService(
        notifications,
        portal_url=app.config.get("SUPPLIER_PORTAL_URL") or "",
        clock=clock,
    )
    app.extensions["factory_ops.stock"] = StockService(
        notifications,
        recipient=app.config.get("STOCK_ALERT_RECIPIENT") or "",
        threshold=int(app.config.get("STOCK_CRITICAL_THRESHOLD") or 10),
    )


def _register_blueprints(app: Flask) -> None:
    from factory_ops.routes.procurement_routes import procurement_bp
    from factory_ops.routes.stock_routes import stock_bp

    app.register_blueprint(procurement_bp)
    app.register_blueprint(stock_bp)


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def _start_request() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _finish_request(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        return observe_response(response)


def _register_error_handlers(app: Flask) -> None:
    def _request_fields(request_id: str) -> dict:
        return {"request_id": request_id, "request_path": request.path, "http_method": request.method}

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        request_id = ensure_request_id()
        log = app.logger.error if exc.critical else app.logger.warning
        log(
            "application_error",
            extra={
                **_request_fields(request_id),
                "error_code": exc.code,
                "http_status": exc.http_status,
                "details": exc.details,
            },
            exc_info=exc.critical,
        )
        return jsonify(exc.to_response_payload(request_id)), exc.http_status

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        request_id = ensure_request_id()
        mapped = SystemError(code="unexpected_error", details=str(exc))
        app.logger.exception("unexpected_exception", extra={**_request_fields(request_id), "error_code": mapped.code})
        # details stay in the log; the client only gets the friendly message
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        db_path = str(app.config.get("DB_PATH") or "")
        status = "ok"
        try:
            get_db().execute("SELECT 1").fetchone()
        except Exception:  # noqa: BLE001
            app.logger.exception("health_db_check_failed")
            status = "degraded"
        return {
            "status": status,
            "db": "postgres" if db_path.startswith("postgres") else "sqlite",
            "email_mode": app.config.get("EMAIL_MODE", "log"),
            "metrics": metrics_snapshot(),
        }
