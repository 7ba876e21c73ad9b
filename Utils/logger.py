import os
import logging
from logging.handlers import TimedRotatingFileHandler, SMTPHandler
import gzip
import glob
import time
import re
from datetime import datetime
from collections import defaultdict
import click
from flask.cli import with_appcontext

LOG_FORMAT = "%(asctime)s [%(levelname)s] in %(module)s: %(message)s"
LOG_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2}).*\[(INFO|ERROR|WARNING)\]")


def _rotating_handler(path, backup_count, formatter, level):
    handler = TimedRotatingFileHandler(
        path, when="midnight", interval=1, backupCount=backup_count,
        encoding="utf-8", delay=True
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def _console_handler(formatter):
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.setLevel(logging.INFO)
    return handler


def build_mail_handler(settings):
    """SMTP alert handler built from the SMTP_* settings."""
    recipients = settings.get("SMTP_TO") or ""
    if isinstance(recipients, str):
        recipients = [addr.strip() for addr in recipients.split(",") if addr.strip()]
    return SMTPHandler(
        mailhost=(settings.get("SMTP_HOST"), int(settings.get("SMTP_PORT"))),
        fromaddr=settings.get("SMTP_FROM"),
        toaddrs=recipients,
        subject=settings.get("SMTP_SUBJECT"),
        credentials=(settings.get("SMTP_USER") or "", settings.get("SMTP_PASS") or ""),
        secure=()
    )


def _attach(logger, *handlers):
    """Swap in fresh handlers, closing the ones a previous app left behind."""
    for old in [h for h in logger.handlers if getattr(h, "_shop_handler", False)]:
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        handler._shop_handler = True
        logger.addHandler(handler)


# ==================================================
# LOGGING SETUP
# ==================================================
def setup_logging(app):
    """Configure logging for the Flask app."""
    log_dir = app.config.get("LOG_DIR", "logs")
    os.makedirs(log_dir, exist_ok=True)

    # Prevent duplicate log handlers when Flask auto-reloads
    if getattr(app, "_logging_configured", False):
        return app.logger
    app._logging_configured = True

    formatter = logging.Formatter(LOG_FORMAT)
    access_formatter = logging.Formatter("%(asctime)s - %(message)s")

    # -------------------------
    # APPLICATION LOGGER
    # -------------------------
    error_handler = _rotating_handler(os.path.join(log_dir, "error.log"), 30, formatter, logging.ERROR)

    app_logger = app.logger
    app_logger.setLevel(logging.INFO)
    _attach(
        app_logger,
        _rotating_handler(os.path.join(log_dir, "app.log"), 14, formatter, logging.INFO),
        error_handler,
        _console_handler(formatter),
    )

    # -------------------------
    # ACCESS LOGGER
    # -------------------------
    access_logger = logging.getLogger("access")
    access_logger.setLevel(logging.INFO)
    _attach(
        access_logger,
        _rotating_handler(os.path.join(log_dir, "access.log"), 7, access_formatter, logging.INFO),
        _console_handler(access_formatter),
    )

    # -------------------------
    # ORDERS LOGGER
    # -------------------------
    # Order lifecycle, payment verification and cart reconciliation
    orders_logger = logging.getLogger("orders")
    orders_logger.setLevel(logging.INFO)
    orders_logger.propagate = False
    _attach(
        orders_logger,
        _rotating_handler(os.path.join(log_dir, "orders.log"), 30, formatter, logging.INFO),
        error_handler,
        _console_handler(formatter),
    )

    # -------------------------
    # EMAIL ALERTS (OPT-IN)
    # -------------------------
    if app.config.get("ENABLE_SMTP_ALERTS") and not app.debug:
        try:
            mail_handler = build_mail_handler(app.config)
            mail_handler._shop_handler = True
            mail_handler.setLevel(logging.ERROR)
            mail_handler.setFormatter(formatter)
            app_logger.addHandler(mail_handler)
            orders_logger.addHandler(mail_handler)
        except Exception as e:
            app_logger.warning(f"SMTP alerts disabled due to configuration error: {e}")

    # -------------------------
    # LOG HOOKS & TASKS
    # -------------------------
    register_access_log_hook(app, access_logger)
    cleanup_old_logs(app, log_dir)
    register_log_summary_command(app)

    app_logger.info("🚀 Logging initialized successfully.")
    return app_logger


# ==================================================
# ACCESS LOGGING
# ==================================================
def register_access_log_hook(app, access_logger):
    """Logs each incoming request (IP, method, URL) into access.log."""
    from flask import request

    @app.before_request
    def log_request_info():
        access_logger.info(f"{request.remote_addr} {request.method} {request.url}")


# ==================================================
# OLD LOG CLEANUP & COMPRESSION
# ==================================================
def cleanup_old_logs(app, folder="logs", days=7):
    """Compress rotated logs and delete archives older than `days`."""
    now = time.time()
    for log_file in glob.glob(os.path.join(folder, "*.log.*")):
        if log_file.endswith(".gz"):
            continue
        try:
            with open(log_file, "rb") as f_in:
                with gzip.open(f"{log_file}.gz", "wb") as f_out:
                    f_out.writelines(f_in)
            os.remove(log_file)
            app.logger.info(f"🗜️ Compressed log: {log_file}")
        except OSError as e:
            app.logger.error(f"❌ Failed to compress {log_file}: {e}")

    for gz_file in glob.glob(os.path.join(folder, "*.gz")):
        if os.stat(gz_file).st_mtime < now - days * 86400:
            os.remove(gz_file)
            app.logger.info(f"🧹 Deleted old log: {gz_file}")


# ==================================================
# LOG SUMMARY
# ==================================================
def summarize_log_dir(log_dir, days=7) -> dict:
    """Count INFO/WARNING/ERROR lines per day across app, error and order logs."""
    summary = defaultdict(lambda: {"INFO": 0, "ERROR": 0, "WARNING": 0})
    now = datetime.now()

    if not os.path.isdir(log_dir):
        return {}

    for filename in os.listdir(log_dir):
        if not filename.startswith(("app.log", "error.log", "orders.log")):
            continue

        path = os.path.join(log_dir, filename)
        mtime = datetime.fromtimestamp(os.path.getmtime(path))
        if (now - mtime).days > days:
            continue

        opener = gzip.open if filename.endswith(".gz") else open
        try:
            with opener(path, "rt", encoding="utf-8", errors="ignore") as f:
                for line in f:
                    match = LOG_PATTERN.match(line)
                    if match:
                        date_str, level = match.groups()
                        summary[date_str][level] += 1
        except OSError as e:
            click.echo(f"⚠️ Could not read {filename}: {e}")

    return dict(sorted(summary.items()))


def register_log_summary_command(app):
    """Adds 'flask logs:summary' CLI command to view log stats."""

    @click.command("logs:summary")
    @with_appcontext
    @click.option("--days", default=7, help="Days of logs to summarize")
    def summarize_logs(days):
        summary = summarize_log_dir(app.config.get("LOG_DIR", "logs"), days=days)

        if not summary:
            click.echo("No log entries found in the specified time range.")
            return

        click.echo("\n📊 Log Summary\n──────────────────────────────")
        total_info = total_error = total_warn = 0

        for date_str, counts in summary.items():
            total_info += counts["INFO"]
            total_error += counts["ERROR"]
            total_warn += counts["WARNING"]
            click.echo(
                f"{date_str}  INFO: {counts['INFO']:<5}  WARNING: {counts['WARNING']:<5}  ERROR: {counts['ERROR']:<5}"
            )

        click.echo("──────────────────────────────")
        click.echo(
            f"Total INFO: {total_info}   WARNING: {total_warn}   ERROR: {total_error}"
        )

    app.cli.add_command(summarize_logs)
