from flask import Blueprint
from Controllers.orderController import create_order, get_orders, get_order_by_id, update_order_status

order_routes = Blueprint('order_routes', __name__, url_prefix='/api/orders')

# Guest checkout allowed; a bearer token links the order to the buyer
order_routes.add_url_rule('', view_func=create_order, methods=['POST'])
order_routes.add_url_rule('', view_func=get_orders, methods=['GET'])
order_routes.add_url_rule('/<order_id>', view_func=get_order_by_id, methods=['GET'])

# Admin only
order_routes.add_url_rule('/<order_id>/status', view_func=update_order_status, methods=['PATCH'])
