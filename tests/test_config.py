"""Tests for startup configuration."""

import mongomock
import pytest

from app import create_app
from Utils.config import Config, ConfigError

TEST_SETTINGS = {
    "MONGODB_URI": "mongodb://localhost:27017/shop-test",
    "JWT_SECRET": "test-secret-that-is-long-enough-for-hs256",
    "PORTONE_API_KEY": "imp-key",
    "PORTONE_API_SECRET": "imp-secret",
}


def test_missing_secrets_fail_fast():
    with pytest.raises(ConfigError, match="JWT_SECRET"):
        Config.from_mapping({"PORTONE_API_KEY": "k", "PORTONE_API_SECRET": "s"}).validate()


def test_app_refuses_to_boot_without_gateway_credentials(tmp_path):
    settings = dict(TEST_SETTINGS, PORTONE_API_SECRET="", LOG_DIR=str(tmp_path))

    with pytest.raises(ConfigError, match="PORTONE_API_SECRET"):
        create_app(Config.from_mapping(settings), mongo_client_class=mongomock.MongoClient)


def test_values_are_coerced():
    config = Config.from_mapping(dict(
        TEST_SETTINGS,
        JWT_EXPIRES_IN_DAYS="3",
        PAYMENT_TIMEOUT_SECONDS="2.5",
        RATELIMIT_ENABLED="false",
    )).validate()

    assert config["JWT_EXPIRES_IN_DAYS"] == 3
    assert config.PAYMENT_TIMEOUT_SECONDS == 2.5
    assert config["RATELIMIT_ENABLED"] is False
    assert config["JWT_ALGORITHM"] == "HS256"


@pytest.mark.parametrize("key, value", [
    ("JWT_EXPIRES_IN_DAYS", "soon"),
    ("JWT_EXPIRES_IN_DAYS", "0"),
    ("CART_RECONCILER_WORKERS", "-1"),
])
def test_bad_numbers_are_rejected(key, value):
    with pytest.raises(ConfigError):
        Config.from_mapping(dict(TEST_SETTINGS, **{key: value})).validate()


def test_from_env_prefers_atlas_url(monkeypatch):
    for key, value in TEST_SETTINGS.items():
        monkeypatch.setenv(key, str(value))
    monkeypatch.setenv("MONGODB_ATLAS_URL", "mongodb+srv://cluster.mongodb.net/shop")
    monkeypatch.setenv("CORS_ORIGINS", "https://shop.example, https://admin.example")

    config = Config.from_env(dotenv=False).validate()

    assert config["MONGODB_URI"] == "mongodb+srv://cluster.mongodb.net/shop"
    assert config.cors_origins == ["https://shop.example", "https://admin.example"]


def test_smtp_settings_have_defaults_and_are_typed(monkeypatch):
    for key, value in TEST_SETTINGS.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("SMTP_HOST", "mail.shop.example")
    monkeypatch.setenv("SMTP_PORT", "465")

    config = Config.from_env(dotenv=False).validate()

    assert config["SMTP_HOST"] == "mail.shop.example"
    assert config["SMTP_PORT"] == 465
    assert config["SMTP_TO"] == "admin@shop.local"
