import logging
from datetime import datetime, timedelta, timezone

import jwt

logger = logging.getLogger(__name__)


def create_access_token(user, config):
    """
    Generate a signed JWT access token for a user.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": str(user.id),
        "email": user.email,
        "role": getattr(user.role, "value", user.role),
        "exp": now + timedelta(days=config["JWT_EXPIRES_IN_DAYS"]),
        "iat": now
    }
    return jwt.encode(payload, config["JWT_SECRET"], algorithm=config["JWT_ALGORITHM"])


def decode_token(token, config):
    """
    Verify and decode a JWT token.
    Returns payload dict if valid, or None if invalid/expired.
    """
    try:
        return jwt.decode(token, config["JWT_SECRET"], algorithms=[config["JWT_ALGORITHM"]])
    except jwt.ExpiredSignatureError:
        logger.info("🔒 Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        return None
