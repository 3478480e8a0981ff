import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate, upgrade
from dotenv import load_dotenv

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_name=None):
    """Application factory pattern."""
    from eventsnap.services.photo_rules import MAX_FILE_BYTES, MAX_FILES_PER_UPLOAD

    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Public URL of the app (used to build share links for event codes)
    app.config['APP_URL'] = os.environ.get('APP_URL', 'http://localhost:5000')

    # Upload limits
    app.config['MAX_PHOTO_BYTES'] = int(os.environ.get('MAX_PHOTO_BYTES', MAX_FILE_BYTES))
    app.config['MAX_PHOTOS_PER_UPLOAD'] = int(os.environ.get('MAX_PHOTOS_PER_UPLOAD', MAX_FILES_PER_UPLOAD))
    # Whole request body: every photo at max size plus 1 MiB for form overhead
    app.config['MAX_CONTENT_LENGTH'] = (
        app.config['MAX_PHOTO_BYTES'] * app.config['MAX_PHOTOS_PER_UPLOAD'] + 1024 * 1024
    )

    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    log_level = os.environ.get('LOG_LEVEL')
    if log_level:
        app.logger.setLevel(log_level.upper())

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    from eventsnap.routes.main import main_bp
    from eventsnap.routes.auth import auth_bp
    from eventsnap.routes.events import events_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(events_bp)

    @app.errorhandler(413)
    def request_too_large(e):
        return jsonify({'error': 'Upload too large'}), 413

    # Import models so they're known to Flask-Migrate
    from eventsnap import models

    if os.environ.get('AUTO_MIGRATE') and config_name != 'testing':
        with app.app_context():
            upgrade()

    return app
