# billing_core/__init__.py
import logging
import os

from flask import Flask, jsonify, redirect, request, url_for
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_wtf.csrf import CSRFProtect
from flask_babel import Babel, _
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

# Single db instance
db = SQLAlchemy()
bcrypt = Bcrypt()
csrf = CSRFProtect()
babel = Babel()
login_manager = LoginManager()
# Config
from .config import config as app_config
from .errors import ApiError


def get_locale():
    return request.args.get('lang') or request.accept_languages.best_match(
        app_config['default'].BABEL_SUPPORTED_LOCALES or ['en']
    )


def is_api_request():
    return request.path.startswith('/api/')


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if not is_api_request() or error.code < 400:
            return error
        return jsonify({'error': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        if is_api_request():
            return jsonify({'error': 'Internal Server Error'}), 500
        return _("An error occurred."), 500


def create_app(config_name=None):
    root = os.path.dirname(os.path.dirname(__file__))
    app = Flask(
        __name__,
        template_folder=os.path.join(root, 'templates'),
        static_folder=os.path.join(root, 'static')
    )

    # Load config
    env = config_name or os.getenv('FLASK_ENV') or 'production'
    config_class = app_config.get(env)
    if not config_class:
        raise ValueError(f"Unknown config: {env}")

    config_instance = config_class()
    config_instance.validate()
    app.config.from_object(config_instance)

    configure_logging(app)
    app.logger.info("Loaded config: %s", env)

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    csrf.init_app(app)
    babel.init_app(app, locale_selector=get_locale)

    login_manager.init_app(app)
    login_manager.login_view = 'login'
    login_manager.login_message = "Please log in to access this page."

    @login_manager.request_loader
    def load_user_from_request(req):
        from .auth import load_user_from_token
        return load_user_from_token(req.cookies.get(app.config['SESSION_TOKEN_COOKIE']))

    @login_manager.unauthorized_handler
    def unauthorized():
        if is_api_request():
            return jsonify({'error': 'Unauthorized'}), 401
        return redirect(url_for('login'))

    @app.context_processor
    def inject_translator():
        return dict(_=_)

    register_error_handlers(app)

    from .cli import register_commands
    register_commands(app)

    return app


# Expose models for easy import
from .models import User, Client, Invoice, InvoiceStatus
