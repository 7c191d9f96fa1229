# transfer_tracker/__init__.py

from flask import Flask, jsonify
from config import Config, ProductionConfig
from transfer_tracker.extensions import (
    db, login_manager, migrate, limiter, csrf, blob_storage, engine_options
)
from transfer_tracker.errors import TransferError, Unauthenticated
from transfer_tracker.models import User
from flask_migrate import upgrade
from flask_wtf.csrf import CSRFError
import os
import logging
from logging.handlers import RotatingFileHandler
from sqlalchemy.exc import SQLAlchemyError, OperationalError, DisconnectionError


def configure_logging(app):
    if app.config['LOG_TO_STDOUT']:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        app.logger.addHandler(stream_handler)
    else:
        if not os.path.exists('logs'):
            os.mkdir('logs')
        file_handler = RotatingFileHandler('logs/transfer_tracker.log',
                                           maxBytes=10240000,
                                           backupCount=10)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info('Transfer Tracker startup')


def ensure_admin(app):
    """Create the configured admin account if it does not exist yet."""
    if not app.config.get('ADMIN_PASSWORD'):
        return
    if User.query.filter_by(username=app.config['ADMIN_USERNAME']).first():
        return
    admin = User(
        username=app.config['ADMIN_USERNAME'],
        location='Admin',
        is_admin=True
    )
    admin.set_password(app.config['ADMIN_PASSWORD'])
    db.session.add(admin)
    db.session.commit()
    app.logger.info(f"Admin user '{admin.username}' created")


def register_error_handlers(app):
    @app.errorhandler(TransferError)
    def handle_transfer_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'error': error.description}), 400

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def handle_too_large(error):
        return jsonify({'error': 'File too large (max 10MB)'}), 413

    @app.errorhandler(429)
    def handle_rate_limit(error):
        return jsonify({'error': 'Too many requests. Please try again later.'}), 429

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        app.logger.error(f'Database error occurred: {str(error)}')
        db.session.rollback()
        if isinstance(error, OperationalError):
            return jsonify({'error': 'Database connection error. Please try again later.'}), 503
        elif isinstance(error, DisconnectionError):
            db.session.remove()  # Clean up the session
            return jsonify({'error': 'Lost connection to database. Please try again later.'}), 503
        return jsonify({'error': 'An unexpected database error occurred.'}), 500


def create_app(config_class=Config):
    """Application factory.

    Args:
        config_class: Config class, or a mapping of overrides applied on
            top of ``Config``
    """
    app = Flask(__name__)
    if isinstance(config_class, dict):
        app.config.from_object(Config)
        app.config.update(config_class)
    else:
        app.config.from_object(config_class)

    # Force production config if FLASK_ENV is production
    if os.environ.get('FLASK_ENV') == 'production':
        app.config.from_object(ProductionConfig)
        configure_logging(app)

    app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', engine_options(app.config))

    # Initialize Flask extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)
    csrf.init_app(app)
    limiter.init_app(app)
    blob_storage.init_app(app)

    login_manager.session_protection = 'strong'

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated()

    from transfer_tracker.transfers import bp as transfers_bp
    from transfer_tracker.auth import bp as auth_bp
    app.register_blueprint(transfers_bp, url_prefix='/api')
    app.register_blueprint(auth_bp, url_prefix='/auth')

    register_error_handlers(app)

    # Register CLI commands
    from transfer_tracker.cli import init_cli
    init_cli(app)

    with app.app_context():
        migrations_dir = os.path.join(app.root_path, os.pardir, 'migrations')
        if (os.environ.get('FLASK_ENV') == 'production' and
                os.path.isdir(migrations_dir)):
            # Run migrations in production
            upgrade(directory=migrations_dir)
        else:
            db.create_all()

        ensure_admin(app)

    @app.teardown_appcontext
    def cleanup(resp_or_exc):
        """Ensure proper cleanup of database sessions"""
        db.session.remove()

    return app
