from flask import Blueprint
from Controllers.cartController import get_cart, add_item, update_item, remove_item, clear_cart

# ----------------------------
# Cart API routes (bearer token required)
# ----------------------------
cart_routes = Blueprint('cart_routes', __name__, url_prefix='/api/cart')

cart_routes.add_url_rule('', view_func=get_cart, methods=['GET'])
cart_routes.add_url_rule('', view_func=clear_cart, methods=['DELETE'])
cart_routes.add_url_rule('/items', view_func=add_item, methods=['POST'])
cart_routes.add_url_rule('/items/<product_id>', view_func=update_item, methods=['PATCH'])
cart_routes.add_url_rule('/items/<product_id>', view_func=remove_item, methods=['DELETE'])
