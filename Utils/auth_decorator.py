# Utils/auth_decorator.py
from functools import wraps
from flask import request, jsonify, current_app, g
from bson import ObjectId
from Utils.jwt_utils import decode_token
from Models.userModel import User


def get_bearer_token():
    """Return the bearer token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    try:
        token_type, token_val = auth_header.split(" ")
    except ValueError:
        return None
    if token_type.lower() == "bearer" and token_val:
        return token_val
    return None


def resolve_user(token):
    """Decode the token and load its user. Returns (user, error_response)."""
    decoded = decode_token(token, current_app.extensions["shop_config"])
    if not decoded:
        return None, (jsonify({"success": False, "message": "Invalid or expired token"}), 401)

    user_id = decoded.get("user_id")
    if not user_id or not ObjectId.is_valid(user_id):
        return None, (jsonify({"success": False, "message": "Invalid or expired token"}), 401)

    user = User.objects(id=user_id).first()
    if not user:
        return None, (jsonify({"success": False, "message": "User not found"}), 401)

    g.current_user = user
    return user, None


def token_required(f):
    """Ensure that a valid JWT is present."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({"success": False, "message": "Authorization token missing"}), 401

        user, error = resolve_user(token)
        if error:
            return error

        # Attach user to the wrapped function
        return f(user, *args, **kwargs)

    return decorated


def token_optional(f):
    """
    Attach the user when a bearer token is sent, else pass None.
    A token that is sent but invalid is still rejected.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return f(None, *args, **kwargs)

        user, error = resolve_user(token)
        if error:
            return error
        return f(user, *args, **kwargs)

    return decorated


def roles_required(*allowed_roles):
    """
    Restrict access to users with specific roles.
    Example:
        @roles_required("admin")
        def update_order_status(user, order_id): ...
    """
    def wrapper(f):
        @wraps(f)
        @token_required
        def decorated(user, *args, **kwargs):
            user_role = getattr(user.role, "value", user.role)
            if user_role not in allowed_roles:
                return jsonify({
                    "success": False,
                    "message": f"Access denied. Requires role(s): {', '.join(allowed_roles)}"
                }), 403

            return f(user, *args, **kwargs)

        return decorated
    return wrapper


def is_admin(user) -> bool:
    return bool(user) and getattr(user.role, "value", user.role) == "admin"
