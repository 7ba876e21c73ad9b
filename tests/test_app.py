"""Tests for app-level routes, error shapes and logging."""

import logging
import os

from Utils.logger import build_mail_handler, summarize_log_dir


def test_health_reports_database(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.get_json()["status"] in ("connected", "disconnected")


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nowhere")

    assert resp.status_code == 404
    assert resp.get_json() == {
        "success": False,
        "status": "fail",
        "message": "The requested resource could not be found.",
    }


def test_cors_preflight_for_allowed_origin(client):
    resp = client.options("/api/orders", headers={"Origin": "http://localhost:3000"})

    assert resp.status_code == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_cors_ignores_unknown_origin(client):
    resp = client.get("/", headers={"Origin": "https://evil.example"})

    assert "Access-Control-Allow-Origin" not in resp.headers


def test_order_events_go_to_orders_log(app, config):
    logging.getLogger("orders").info("🧾 Order test_order created")

    with open(os.path.join(config["LOG_DIR"], "orders.log"), encoding="utf-8") as f:
        assert "test_order" in f.read()


def test_summarize_log_dir_counts_levels(tmp_path):
    (tmp_path / "app.log").write_text(
        "2025-01-01 10:00:00,000 [INFO] in app: up\n"
        "2025-01-01 10:00:01,000 [ERROR] in app: down\n",
        encoding="utf-8",
    )
    (tmp_path / "orders.log").write_text(
        "2025-01-01 10:00:02,000 [WARNING] in orderController: duplicate\n",
        encoding="utf-8",
    )
    (tmp_path / "access.log").write_text("2025-01-01 10:00:03,000 - GET /\n", encoding="utf-8")

    summary = summarize_log_dir(str(tmp_path), days=7)

    assert summary == {"2025-01-01": {"INFO": 1, "ERROR": 1, "WARNING": 1}}


def test_logs_summary_command(app):
    app.logger.warning("something odd")

    result = app.test_cli_runner().invoke(args=["logs:summary", "--days", "1"])

    assert result.exit_code == 0
    assert "Log Summary" in result.output
    assert "WARNING: 1" in result.output


def test_non_object_bodies_are_rejected(client, customer, auth_headers):
    headers = auth_headers(customer)

    for path, body in [("/api/orders", ["x"]), ("/api/cart/items", [1]), ("/api/users", "hello")]:
        resp = client.post(path, json=body, headers=headers)

        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Request body must be a JSON object."


def test_mail_alerts_use_configured_smtp_settings(config):
    settings = config.validate().as_dict()
    settings.update(SMTP_HOST="mail.shop.example", SMTP_PORT=2525, SMTP_TO="ops@shop.example, dev@shop.example")

    handler = build_mail_handler(settings)

    assert handler.mailhost == "mail.shop.example"
    assert handler.mailport == 2525
    assert handler.toaddrs == ["ops@shop.example", "dev@shop.example"]
    assert handler.fromaddr == "noreply@shop.local"
