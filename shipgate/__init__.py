"""
ShipGate Application Factory
"""
import logging
import os

from dotenv import load_dotenv
from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

# Import extensions from the extensions module
from shipgate.extensions import db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Config classes read the environment at import, so .env must be loaded first
load_dotenv()

from shipgate.config import config  # noqa: E402


def create_app(config_name='development', gateway=None):
    """Application factory

    ``gateway`` replaces the configured CarrierGateway (used by tests).
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)

    # Initialize CORS if needed
    if app.config.get('ENABLE_CORS', False):
        CORS(app)

    # Carrier gateway: account profile is resolved once here
    if gateway is None:
        gateway = _build_gateway(app)
    app.extensions['carrier_gateway'] = gateway

    # Register blueprints
    from shipgate.api import api_bp
    from shipgate.integrations.routes import integrations_bp

    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(integrations_bp, url_prefix='/api/integrations')

    # Create database tables within app context
    # Ensure models are imported so SQLAlchemy is aware of them
    from shipgate import models  # noqa: F401
    with app.app_context():
        db.create_all()
        logger.info("Database tables created")

    # Error handlers
    @app.errorhandler(404)
    def not_found_error(error):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'Not found'}), 404
        return error

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        if request.path.startswith('/api/'):
            return jsonify({'error': 'Internal server error'}), 500
        return error

    return app


def _build_gateway(app):
    from shipgate.integrations.audit import DatabaseAuditLogger, InMemoryAuditLogger
    from shipgate.integrations.gateway import CarrierGateway

    if app.config.get('CARRIER_AUDIT_BACKEND', 'database') == 'memory':
        audit = InMemoryAuditLogger()
    else:
        audit = DatabaseAuditLogger(app)
    return CarrierGateway.from_settings(app.config, audit)


def get_gateway():
    """CarrierGateway bound to the current app."""
    return current_app.extensions['carrier_gateway']
