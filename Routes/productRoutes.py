from flask import Blueprint
from Controllers.productController import (
    get_products, get_product, create_product, update_product, delete_product
)

product_routes = Blueprint('product_routes', __name__, url_prefix='/api/products')

# Public catalog
product_routes.add_url_rule('', view_func=get_products, methods=['GET'])
product_routes.add_url_rule('/<product_id>', view_func=get_product, methods=['GET'])

# Admin only
product_routes.add_url_rule('', view_func=create_product, methods=['POST'])
product_routes.add_url_rule('/<product_id>', view_func=update_product, methods=['PUT'])
product_routes.add_url_rule('/<product_id>', view_func=delete_product, methods=['DELETE'])
