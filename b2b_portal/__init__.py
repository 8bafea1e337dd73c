"""Flask application factory."""
from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect
from b2b_portal.database import init_db
import os


def init_clients(app):
    """
    Create the external service clients used by the checkout pipeline.

    Clients live in app.extensions['b2b_portal'] for the life of the process;
    tests replace them with fakes.
    """
    from b2b_portal.services.email_service import init_mail, OrderNotifier
    from b2b_portal.services.shopify_client import ShopifyClient
    from b2b_portal.services.storage_service import EvidenceStorage

    mail = init_mail(app)
    app.extensions['b2b_portal'] = {
        'shopify': ShopifyClient.from_config(app.config),
        'storage': EvidenceStorage.from_config(app.config),
        'notifier': OrderNotifier(mail, app.config),
    }

    if not app.config.get('SHOPIFY_ADMIN_API_TOKEN'):
        app.logger.warning("SHOPIFY_ADMIN_API_TOKEN not set: draft order creation will fail")


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize CSRF protection (XHR clients send X-CSRFToken)
    csrf = CSRFProtect(app)

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'success': False, 'status': 'error', 'message': 'La sesión ha expirado. Recarga la página.'}), 400

    # Initialize Sentry for error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Setup Prometheus metrics instrumentation
    from b2b_portal.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # External clients (Shopify, object storage, mail)
    init_clients(app)

    # Load customer context before each request
    from b2b_portal.middleware import load_customer

    @app.before_request
    def before_request_handler():
        """Load customer context for each request."""
        load_customer()

    # Error Handlers
    from b2b_portal.exceptions import PortalError

    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"PortalError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"PortalError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'success': False, 'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(413)
    def request_too_large(error):
        return jsonify({'success': False, 'status': 'error', 'message': 'El archivo es demasiado grande'}), 413

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException) and error.code != 500:
            return jsonify({'success': False, 'status': 'error', 'message': error.description}), error.code

        app.logger.error(f"Unhandled Exception on {request.path}: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'success': False, 'status': 'error', 'message': 'Error interno del servidor'}), 500

    # Register blueprints
    from b2b_portal.blueprints.checkout import checkout_bp
    from b2b_portal.blueprints.profile import profile_bp
    from b2b_portal.blueprints.orders import orders_bp
    from b2b_portal.blueprints.metrics import metrics_bp

    app.register_blueprint(checkout_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(metrics_bp)

    # CLI commands
    from b2b_portal.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
