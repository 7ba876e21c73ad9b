import os
from dotenv import load_dotenv


class ConfigError(RuntimeError):
    """Raised at startup when required settings are missing or malformed."""


# =====================================
#  DEFAULTS
# =====================================
DEFAULTS = {
    "MONGODB_URI": "mongodb://localhost:27017/shopping-mall",
    "JWT_SECRET": None,
    "JWT_ALGORITHM": "HS256",
    "JWT_EXPIRES_IN_DAYS": 7,
    "PORTONE_API_KEY": None,
    "PORTONE_API_SECRET": None,
    "PORTONE_API_BASE_URL": "https://api.iamport.kr",
    "PAYMENT_TIMEOUT_SECONDS": 15.0,
    "LOG_DIR": "logs",
    "RATELIMIT_DEFAULT": "200 per hour;10 per second",
    "RATELIMIT_LOGIN": "10 per minute",
    "RATELIMIT_ENABLED": True,
    "CORS_ORIGINS": "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    "CART_RECONCILER_WORKERS": 2,
    "ENABLE_SMTP_ALERTS": False,
    "SMTP_HOST": "smtp.gmail.com",
    "SMTP_PORT": 587,
    "SMTP_FROM": "noreply@shop.local",
    "SMTP_TO": "admin@shop.local",
    "SMTP_SUBJECT": "🚨 Storefront Critical Error",
    "SMTP_USER": "",
    "SMTP_PASS": "",
}

REQUIRED = ("MONGODB_URI", "JWT_SECRET", "PORTONE_API_KEY", "PORTONE_API_SECRET")

_INT_KEYS = ("JWT_EXPIRES_IN_DAYS", "CART_RECONCILER_WORKERS", "SMTP_PORT")
_FLOAT_KEYS = ("PAYMENT_TIMEOUT_SECONDS",)
_BOOL_KEYS = ("RATELIMIT_ENABLED", "ENABLE_SMTP_ALERTS")


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Explicit settings object handed to the app factory and to the components
    that need credentials (JWT helpers, payment verifier).

    Build it once at startup with `Config.from_env()` (reads .env through
    python-dotenv) or `Config.from_mapping({...})` in tests, then call
    `validate()` so a missing secret fails the boot instead of a request.
    """

    def __init__(self, values: dict):
        merged = dict(DEFAULTS)
        merged.update({k: v for k, v in values.items() if v is not None})
        self._values = merged

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Config":
        if dotenv:
            load_dotenv()
        values = {}
        for key in DEFAULTS:
            raw = os.getenv(key)
            if raw is not None and raw != "":
                values[key] = raw
        # Atlas URL wins over the plain URI when both are set
        atlas = os.getenv("MONGODB_ATLAS_URL")
        if atlas:
            values["MONGODB_URI"] = atlas
        return cls(values)

    @classmethod
    def from_mapping(cls, mapping: dict) -> "Config":
        return cls(dict(mapping))

    def __getitem__(self, key):
        return self._values[key]

    def __getattr__(self, key):
        try:
            return self._values[key]
        except KeyError:
            raise AttributeError(key) from None

    def get(self, key, default=None):
        return self._values.get(key, default)

    def as_dict(self) -> dict:
        return dict(self._values)

    @property
    def cors_origins(self) -> list:
        raw = self._values.get("CORS_ORIGINS") or ""
        if isinstance(raw, (list, tuple)):
            return list(raw)
        return [o.strip() for o in raw.split(",") if o.strip()]

    def validate(self) -> "Config":
        """Coerce typed settings and fail fast on anything missing."""
        missing = [key for key in REQUIRED if not self._values.get(key)]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

        try:
            for key in _INT_KEYS:
                self._values[key] = int(self._values[key])
            for key in _FLOAT_KEYS:
                self._values[key] = float(self._values[key])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric configuration: {e}") from e

        for key in _BOOL_KEYS:
            self._values[key] = _as_bool(self._values[key])

        if self._values["JWT_EXPIRES_IN_DAYS"] <= 0:
            raise ConfigError("JWT_EXPIRES_IN_DAYS must be positive")
        if self._values["CART_RECONCILER_WORKERS"] <= 0:
            raise ConfigError("CART_RECONCILER_WORKERS must be positive")
        return self
