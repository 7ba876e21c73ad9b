from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Bound to the app in create_app(); default limits come from RATELIMIT_DEFAULT
limiter = Limiter(get_remote_address)


def login_limit():
    return current_app.config.get("RATELIMIT_LOGIN", "10 per minute")
