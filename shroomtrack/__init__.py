"""Flask application factory."""
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError, generate_csrf
from werkzeug.exceptions import HTTPException
from shroomtrack.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # JSON clients send the token back in the X-CSRFToken header
    CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'The session has expired. Fetch a new CSRF token.'}), 400

    # Sentry for error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,  # 10% for profiling
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Prometheus metrics instrumentation
    from shroomtrack.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host
            x_port=1,     # Trust X-Forwarded-Port
            x_prefix=0    # No prefix (not behind a URL prefix)
        )

    # Initialize database
    init_db(app)

    # Error Handlers
    from shroomtrack.exceptions import LedgerError
    from shroomtrack.blueprints.metrics import record_error

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        """Handle custom application exceptions."""
        record_error(error)
        if error.status_code >= 500:
            app.logger.error(f"LedgerError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"LedgerError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    @app.route('/csrf-token')
    def csrf_token():
        return jsonify({'csrf_token': generate_csrf()})

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    # Register blueprints
    from shroomtrack.blueprints.sales import sales_bp
    from shroomtrack.blueprints.dashboard import dashboard_bp
    from shroomtrack.blueprints.metrics import metrics_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from shroomtrack.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"ShroomTrack ledger ready (env={app.config.get('ENV')})")

    return app
