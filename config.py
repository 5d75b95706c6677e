import os
from dotenv import load_dotenv

# Load the .env file immediately
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    # 1. Security
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-fallback-key'
    JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS') or 30)
    # The API authenticates with bearer tokens, not cookies
    WTF_CSRF_ENABLED = False

    # 2. Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'ims.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 3. Uploads
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or \
        os.path.join(basedir, 'uploads', 'documents')
    ALLOWED_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg', 'doc', 'docx'}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # 4. Email Configuration
    MAIL_SERVER = os.environ.get('MAIL_SERVER') or 'smtp.gmail.com'
    MAIL_PORT = int(os.environ.get('MAIL_PORT') or 587)
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'True') == 'True'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or MAIL_USERNAME or 'no-reply@ims.local'
    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:5173'

    # 5. Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    # 6. Department catalog override (None = built-in catalog)
    DEPARTMENTS = None

    # 7. Celery Configuration
    CELERY = {
        'broker_url': os.environ.get('CELERY_BROKER_URL') or 'redis://localhost:6379/0',
        'result_backend': os.environ.get('CELERY_RESULT_BACKEND') or 'redis://localhost:6379/0',
        'task_always_eager': os.environ.get('CELERY_TASK_ALWAYS_EAGER') == 'True',
        'task_ignore_result': True,
    }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = 'no-reply@ims.test'
    LOG_LEVEL = 'WARNING'
    CELERY = {
        'broker_url': 'memory://',
        'result_backend': 'cache+memory://',
        'task_always_eager': True,
        'task_ignore_result': True,
    }
