import logging

import click
from flask import Flask, jsonify

from .config import Config, LOG_FORMAT
from .controllers.admin import bp as admin_bp
from .controllers.auth import bp as auth_bp
from .controllers.dashboard import bp as dashboard_bp
from .controllers.notifications import bp as notifications_bp
from .controllers.products import bp as products_bp
from .controllers.rentals import bp as rentals_bp
from .exceptions import RentalError, StorageError
from .models.store import Store
from .services import build_services
from .utils.dates import as_date, local_date

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """
    Application factory.

    `test_config` overrides Config values; it may also carry a ready `STORE`,
    a `NOTIFIER` and a `CLOCK` callable (returning an aware datetime).
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config["LOG_LEVEL"], format=LOG_FORMAT)

    store = app.config.get("STORE") or Store.instance(app.config["DATA_PATH"] or None)
    app.extensions["rentalhub"] = build_services(
        store,
        notifier=app.config.get("NOTIFIER"),
        clock=app.config.get("CLOCK"),
        timezone=app.config["TIMEZONE"],
        approval_mode=app.config["APPROVAL_MODE"],
        price_tolerance=app.config["PRICE_TOLERANCE"],
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(rentals_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(RentalError)
    def rental_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(StorageError)
    def storage_error(err):
        logger.error("Storage failure: %s", err)
        return jsonify(err.to_dict()), err.status_code

    @app.get("/health")
    def health():
        return jsonify(status="ok")

    @app.cli.command("send-reminders")
    @click.option("--date", "on_date", default=None, help="Run as of YYYY-MM-DD (default: today).")
    def send_reminders(on_date):
        """Notify both parties of committed rentals starting tomorrow."""
        svc = app.extensions["rentalhub"]
        today = as_date(on_date) if on_date else local_date(svc.rentals.clock(), svc.rentals.timezone)
        sent = svc.notifications.send_start_reminders(today)
        click.echo(f"Reminders sent for {sent} rental(s) starting after {today.isoformat()}.")

    return app


__all__ = ["create_app"]
