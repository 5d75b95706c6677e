import io
import itertools
from datetime import date, datetime

import pytest
from flask import g
from flask.testing import FlaskClient

from config import TestingConfig
from ims import create_app
from ims.constants import Role, ApplicationStatus, REQUIRED_DOCUMENTS
from ims.extensions import db, mail
from ims.models import User, Application


@pytest.fixture
def app(tmp_path):
    class _Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / 'uploads')

    app = create_app(_Config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


class TokenClient(FlaskClient):
    """Requests share the fixture's app context, so the cached login is dropped each time."""

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture
def client(app):
    app.test_client_class = TokenClient
    return app.test_client()


@pytest.fixture
def outbox(app):
    with mail.record_messages() as messages:
        yield messages


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(role, department=None, subdepartment=None, password='secret123', **fields):
        role = Role(role)
        n = next(counter)
        user = User(
            first_name=fields.get('first_name', f'{role.value.title()}{n}'),
            middle_name=fields.get('middle_name', ''),
            last_name=fields.get('last_name', 'Tester'),
            email=fields.get('email', f'{role.value}{n}@example.com'),
            phone_number=fields.get('phone_number', '0712345678'),
            role=role,
            department=department,
            subdepartment=subdepartment,
        )
        if role.is_applicant:
            user.institution = fields.get('institution', 'University of Nairobi')
            user.course = fields.get('course', 'Computer Science')
            user.year_of_study = fields.get('year_of_study', '3')
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_application(app):
    def _make(applicant, department='SDPA', subdepartment='ICT',
              status=ApplicationStatus.PENDING, created_at=None, start_date=None):
        role = Role(applicant.role)
        application = Application(
            user_id=applicant.id,
            applicant_role=role,
            start_date=start_date or date(2026, 1, 5),
            end_date=date(2026, 4, 5),
            preferred_department=department,
            preferred_subdepartment=subdepartment,
            status=status,
            created_at=created_at or datetime.utcnow(),
        )
        for field in REQUIRED_DOCUMENTS[role]:
            application.set_document(field, f'{field}_0001.pdf')
        db.session.add(application)
        db.session.commit()
        return application

    return _make


@pytest.fixture
def documents():
    """Stored document names for every upload slot an applicant role needs."""
    def _docs(role):
        return {field: f'{field}_abcd1234.pdf' for field in REQUIRED_DOCUMENTS[Role(role)]}
    return _docs


@pytest.fixture
def auth_header():
    def _header(user):
        return {'Authorization': f'Bearer {user.get_auth_token()}'}
    return _header


@pytest.fixture
def upload_files():
    """Multipart file parts for every upload slot an applicant role needs."""
    def _files(role):
        return {field: (io.BytesIO(b'%PDF-1.4 test'), f'{field}.pdf')
                for field in REQUIRED_DOCUMENTS[Role(role)]}
    return _files
