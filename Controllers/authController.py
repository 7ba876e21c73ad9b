import logging
import re

from bson import ObjectId
from flask import jsonify, current_app
from mongoengine import NotUniqueError

from Models.cartModel import Cart
from Models.userModel import User, Role
from Utils.appError import AppError
from Utils.request_body import json_body
from Utils.jwt_utils import create_access_token
from Utils.limiter import limiter, login_limit
from Utils.auth_decorator import token_required, roles_required, is_admin, get_bearer_token, resolve_user

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
LOGIN_FAILED_MESSAGE = "Invalid email or password."
DUPLICATE_EMAIL_MESSAGE = "This email is already registered."


def _normalize_email(email):
    return email.strip().lower() if isinstance(email, str) else ""


def _get_user_or_404(user_id):
    if not ObjectId.is_valid(user_id):
        raise AppError("User not found.", 404)
    user = User.objects(id=user_id).first()
    if not user:
        raise AppError("User not found.", 404)
    return user


def _role(value):
    valid = [r.value for r in Role]
    if value not in valid:
        raise AppError(f"role must be one of: {', '.join(valid)}.", 400)
    return Role(value)


# =====================================================
# REGISTER
# =====================================================
def register():
    data = json_body()
    email = _normalize_email(data.get("email"))
    name = data.get("name")
    password = data.get("password")
    role = data.get("role") or Role.CUSTOMER.value

    if not all([email, name, password]):
        raise AppError("Email, name and password are required.", 400)
    if not EMAIL_PATTERN.match(email):
        raise AppError("Email format is invalid.", 400)

    role = _role(role)
    if role == Role.ADMIN:
        # Only an authenticated admin may create another admin
        token = get_bearer_token()
        actor, error = resolve_user(token) if token else (None, None)
        if error or not is_admin(actor):
            raise AppError("Only an admin can create admin accounts.", 403)

    if User.objects(email=email).first():
        raise AppError(DUPLICATE_EMAIL_MESSAGE, 409)

    user = User(
        email=email,
        name=name,
        password=password,
        role=role,
        address=data.get("address") or "",
    )
    try:
        user.save()
    except NotUniqueError:
        raise AppError(DUPLICATE_EMAIL_MESSAGE, 409)

    logger.info(f"✅ New user registered: {email} ({user.role_value})")
    return jsonify({
        "success": True,
        "message": "User registered successfully.",
        "data": user.to_json()
    }), 201


# =====================================================
# LOGIN
# =====================================================
@limiter.limit(login_limit)
def login():
    data = json_body()
    email = _normalize_email(data.get("email"))
    password = data.get("password")

    if not email or not password:
        raise AppError("Email and password are required.", 400)
    if not EMAIL_PATTERN.match(email):
        raise AppError("Email format is invalid.", 400)

    # Unknown email, wrong password and lookup failures all look the same
    try:
        user = User.objects(email=email).first()
        authenticated = bool(user) and user.correct_password(password)
    except Exception:
        logger.exception(f"🔥 Login lookup failed for {email}")
        authenticated = False

    if not authenticated:
        logger.warning(f"⚠️ Failed login for {email}")
        raise AppError(LOGIN_FAILED_MESSAGE, 401)

    token = create_access_token(user, current_app.extensions["shop_config"])
    logger.info(f"✅ Login successful for {email}")

    return jsonify({
        "success": True,
        "message": "Login successful.",
        "data": user.to_json(),
        "token": token
    }), 200


# =====================================================
# CURRENT USER
# =====================================================
@token_required
def get_current_user(user):
    return jsonify({"success": True, "data": user.to_json()}), 200


# =====================================================
# ADMIN USER MANAGEMENT
# =====================================================
@roles_required("admin")
def get_users(user):
    users = User.objects.order_by("-created_at")
    data = [u.to_json() for u in users]
    return jsonify({"success": True, "count": len(data), "data": data}), 200


@roles_required("admin")
def get_user(user, user_id):
    return jsonify({"success": True, "data": _get_user_or_404(user_id).to_json()}), 200


@roles_required("admin")
def update_user(user, user_id):
    target = _get_user_or_404(user_id)
    data = json_body()

    if "email" in data:
        email = _normalize_email(data["email"])
        if not EMAIL_PATTERN.match(email):
            raise AppError("Email format is invalid.", 400)
        if User.objects(email=email, id__ne=target.id).first():
            raise AppError(DUPLICATE_EMAIL_MESSAGE, 409)
        target.email = email
    if data.get("name"):
        target.name = data["name"]
    if data.get("password"):
        target.password = data["password"]
    if data.get("role"):
        target.role = _role(data["role"])
    if "address" in data:
        target.address = data["address"] or ""

    try:
        target.save()
    except NotUniqueError:
        raise AppError(DUPLICATE_EMAIL_MESSAGE, 409)

    logger.info(f"✏️ User {target.email} updated by {user.email}")
    return jsonify({
        "success": True,
        "message": "User updated.",
        "data": target.to_json()
    }), 200


@roles_required("admin")
def delete_user(user, user_id):
    target = _get_user_or_404(user_id)
    summary = {"id": str(target.id), "email": target.email, "name": target.name}
    Cart.objects(user=target.id).delete()
    target.delete()

    logger.info(f"🗑️ User {summary['email']} deleted by {user.email}")
    return jsonify({
        "success": True,
        "message": "User deleted.",
        "data": summary
    }), 200
