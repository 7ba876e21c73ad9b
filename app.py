import os
import atexit

from flask import Flask, request, jsonify
from Utils.config import Config
from Utils.db import init_db, get_connection_status
from Utils.logger import setup_logging
from Utils.payment_gateway import PortOneVerifier
from Utils.cart_reconciler import CartReconciler
from Utils.limiter import limiter

# Import blueprints
from Controllers.errorController import error_bp
from Routes.userRoutes import user_routes
from Routes.productRoutes import product_routes
from Routes.cartRoutes import cart_routes
from Routes.orderRoutes import order_routes


def register_cors(app, config):
    """Answer SPA pre-flights and tag responses for the configured origins."""
    allowed = set(config.cors_origins)

    @app.before_request
    def cors_preflight():
        if request.method == "OPTIONS":
            return "", 204

    @app.after_request
    def cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-Requested-With, Accept, Origin"
            response.headers["Vary"] = "Origin"
        return response


def create_app(config: Config | None = None, payment_verifier=None, mongo_client_class=None):
    """
    Build the storefront API.

    `config` defaults to the process environment (and .env). Tests pass an
    explicit Config plus a verifier backed by a mock transport and a mongomock
    client class.
    """
    config = (config or Config.from_env()).validate()

    # ----------------------------
    # Database
    # ----------------------------
    connect_kwargs = {"mongo_client_class": mongo_client_class} if mongo_client_class else {}
    init_db(config, **connect_kwargs)

    # ----------------------------
    # Flask app configuration
    # ----------------------------
    app = Flask(__name__)
    app.config.update(config.as_dict())
    app.config["SECRET_KEY"] = config["JWT_SECRET"]
    app.json.sort_keys = False

    # ----------------------------
    # Logging
    # ----------------------------
    setup_logging(app)

    # ----------------------------
    # Rate Limiter
    # ----------------------------
    app.config["RATELIMIT_DEFAULT"] = config["RATELIMIT_DEFAULT"]
    app.config["RATELIMIT_ENABLED"] = config["RATELIMIT_ENABLED"]
    limiter.init_app(app)

    # ----------------------------
    # Collaborators
    # ----------------------------
    reconciler = CartReconciler(max_workers=config["CART_RECONCILER_WORKERS"])
    atexit.register(reconciler.shutdown)
    app.extensions["shop_config"] = config
    app.extensions["payment_verifier"] = payment_verifier or PortOneVerifier.from_config(config)
    app.extensions["cart_reconciler"] = reconciler

    register_cors(app, config)

    # ----------------------------
    # Register blueprints
    # ----------------------------
    app.register_blueprint(error_bp)
    app.register_blueprint(user_routes)
    app.register_blueprint(product_routes)
    app.register_blueprint(cart_routes)
    app.register_blueprint(order_routes)

    @app.route("/")
    def index():
        return jsonify({"success": True, "message": "Shopping mall API is running."})

    @app.route("/health")
    @limiter.exempt
    def health():
        return jsonify(get_connection_status())

    app.logger.info("🛍️ Storefront API ready.")
    return app


# ----------------------------
# Run the app
# ----------------------------
if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    application = create_app()
    application.logger.info(f"App running on port {port}...")
    application.run(host='0.0.0.0', port=port, debug=False)
