from flask import Blueprint
from Controllers.authController import (
    register, login, get_current_user,
    get_users, get_user, update_user, delete_user
)

# ----------------------------
# Blueprints
# ----------------------------
user_routes = Blueprint('user_routes', __name__, url_prefix='/api/users')

# ----------------------------
# Auth routes
# ----------------------------
user_routes.add_url_rule('', view_func=register, methods=['POST'])
user_routes.add_url_rule('/login', view_func=login, methods=['POST'])
user_routes.add_url_rule('/me', view_func=get_current_user, methods=['GET'])

# ----------------------------
# Admin user management
# ----------------------------
user_routes.add_url_rule('', view_func=get_users, methods=['GET'])
user_routes.add_url_rule('/<user_id>', view_func=get_user, methods=['GET'])
user_routes.add_url_rule('/<user_id>', view_func=update_user, methods=['PUT', 'PATCH'])
user_routes.add_url_rule('/<user_id>', view_func=delete_user, methods=['DELETE'])
