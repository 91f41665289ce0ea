"""Flask application factory for the pharmacy storefront."""
import os
import traceback

from flask import Flask, jsonify, request
from flask_wtf.csrf import CSRFProtect, CSRFError, generate_csrf
from werkzeug.exceptions import HTTPException
from sqlalchemy import text

from pharmastore.database import init_db, get_session


def create_app(config_object='config.Config', **overrides):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    csrf = CSRFProtect(app)

    # Sentry error tracking in production
    if app.config.get('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    from pharmastore.services.cache_service import init_cache
    init_cache(app)

    from pharmastore.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    init_db(app)

    from pharmastore.middleware import load_user_and_pharmacy

    @app.before_request
    def before_request_handler():
        """Load user and pharmacy context for each request."""
        load_user_and_pharmacy()

    _register_error_handlers(app)

    # Register blueprints
    from pharmastore.blueprints.cart import cart_bp
    from pharmastore.blueprints.orders import orders_bp
    from pharmastore.blueprints.payments import payments_bp
    from pharmastore.blueprints.payment_callbacks import payment_callbacks_bp
    from pharmastore.blueprints.catalog import catalog_bp
    from pharmastore.blueprints.metrics import metrics_bp

    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(metrics_bp)

    # Provider callbacks carry no session, so no CSRF token
    csrf.exempt(payment_callbacks_bp)
    app.register_blueprint(payment_callbacks_bp)

    @app.route('/api/csrf-token')
    def csrf_token():
        """Token for browser clients to send back as X-CSRFToken."""
        return jsonify({'csrfToken': generate_csrf()})

    @app.route('/health')
    def health():
        checks = {'database': 'ok', 'cache': 'disabled'}
        status_code = 200
        try:
            get_session().execute(text('SELECT 1'))
        except Exception as e:
            app.logger.error(f"Health check database failure: {e}")
            checks['database'] = 'error'
            status_code = 503

        cache = app.extensions.get('cache')
        if cache is not None and cache.enabled:
            checks['cache'] = 'ok' if cache.is_available() else 'error'

        checks['status'] = 'ok' if status_code == 200 else 'error'
        return jsonify(checks), status_code

    from pharmastore.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app


def _register_error_handlers(app):
    from pharmastore.exceptions import PharmacyError

    @app.errorhandler(PharmacyError)
    def handle_pharmacy_error(error):
        """Typed application errors rendered as JSON."""
        if error.status_code >= 500:
            app.logger.error(f"PharmacyError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"{error.error_code} [{error.status_code}] {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'errorCode': 'CSRF_ERROR', 'message': e.description}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            'status': 'error',
            'errorCode': e.name.upper().replace(' ', '_'),
            'message': e.description
        }), e.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'errorCode': 'INTERNAL_ERROR', 'message': 'Internal Server Error'}), 500
