import os
from flask import Flask, jsonify
from clinic.extensions import db, bcrypt, migrate, jwt, limiter, cors
from clinic.utils.encryption_util import encryptor
from clinic.utils.error_handlers import register_error_handlers
from clinic.commands import register_commands
from config import config

def create_app(config_name=None):
    app = Flask(__name__)
    config_name = config_name or os.getenv('FLASK_CONFIG', 'default')
    config_class = config[config_name]
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    cors.init_app(
        app,
        origins=app.config['ALLOWED_ORIGINS'],
        allow_headers=['Content-Type', 'Authorization', 'X-Requested-With'],
        methods=['GET', 'POST', 'PATCH', 'OPTIONS']
    )

    # Initialize custom utilities
    encryptor.init_app(app)

    # Initialize app with config
    config_class.init_app(app)

    # Register blueprints
    from clinic.api import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    # Register error handlers and commands
    register_error_handlers(app)
    register_commands(app)

    # A token is only honoured while its session row is live
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        from clinic.models.user_models import Session
        session = db.session.get(Session, jwt_payload['jti'])
        return session is None or not session.is_valid()

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': reason}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'error': reason}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has expired'}), 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Token has been revoked'}), 401

    return app
