import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import Config
from .extensions import db, login_manager, mail, migrate, celery
from .models import User
from .errors import IMSError
from .celery_utils import init_celery
from .permissions import bearer_token

logger = logging.getLogger(__name__)


def configure_logging(app):
    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    logging.getLogger('ims').setLevel(app.config.get('LOG_LEVEL', 'INFO'))


def register_error_handlers(app):
    @app.errorhandler(IMSError)
    def handle_ims_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({'message': err.description}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        logger.exception("Unhandled error")
        db.session.rollback()
        return jsonify({'message': 'Internal server error'}), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    mail.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # Initialize Celery
    init_celery(app, celery)

    # Identity comes from the bearer token on every request
    @login_manager.request_loader
    def load_user_from_request(request):
        token = bearer_token(request)
        if not token:
            return None
        user = User.verify_auth_token(token)
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'message': 'Not authorized, token missing, invalid or expired'}), 401

    register_error_handlers(app)

    # Register Blueprints
    from .blueprints.main import main_bp
    from .blueprints.auth import auth_bp
    from .blueprints.admin import admin_bp
    from .blueprints.hr import hr_bp
    from .blueprints.applications import applications_bp
    from .blueprints.departments import departments_bp
    from .blueprints.documents import documents_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(hr_bp, url_prefix='/api/hr')
    app.register_blueprint(applications_bp, url_prefix='/api/applications')
    app.register_blueprint(departments_bp, url_prefix='/api/departments')
    app.register_blueprint(documents_bp, url_prefix='/api/documents')

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Note: With Flask-Migrate, use 'flask db upgrade' in production;
    # create_all keeps a fresh development database usable.
    with app.app_context():
        db.create_all()

    return app
