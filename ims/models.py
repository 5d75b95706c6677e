import jwt
from datetime import datetime, timedelta
from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from ims.constants import Role, ApplicationStatus, NATIONAL_ID_DOCUMENT, ALL_DOCUMENT_FIELDS
from ims.extensions import db


def _enum_column(enum_cls, **kwargs):
    return db.Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
        **kwargs
    )


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(64), nullable=False)
    middle_name = db.Column(db.String(64), default='')
    last_name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256))
    phone_number = db.Column(db.String(20))
    role = db.Column(_enum_column(Role), nullable=False)

    # Applicant profile
    institution = db.Column(db.String(150))
    course = db.Column(db.String(150))
    year_of_study = db.Column(db.String(20))

    department = db.Column(db.String(50))
    subdepartment = db.Column(db.String(50))

    profile_picture = db.Column(db.String(200), default='')
    is_active_account = db.Column('is_active', db.Boolean, default=True, nullable=False)
    must_change_password = db.Column(db.Boolean, default=False, nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @staticmethod
    def normalise_email(email):
        return (email or '').strip().lower()

    @property
    def full_name(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return ' '.join(p.strip() for p in parts if p and p.strip())

    @property
    def is_active(self):
        return bool(self.is_active_account)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash or not password:
            return False
        return check_password_hash(self.password_hash, password)

    def get_auth_token(self, expires_days=None):
        """Signed bearer token identifying this user."""
        if expires_days is None:
            expires_days = current_app.config.get('JWT_EXPIRES_DAYS', 30)
        payload = {
            'user_id': self.id,
            'exp': datetime.utcnow() + timedelta(days=expires_days)
        }
        return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')

    @staticmethod
    def verify_auth_token(token):
        """Returns the user for a valid token, or None."""
        try:
            payload = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=['HS256'])
        except jwt.PyJWTError:
            return None
        user_id = payload.get('user_id')
        if user_id is None:
            return None
        return db.session.get(User, user_id)

    def to_dict(self):
        return {
            'id': self.id,
            'firstName': self.first_name,
            'middleName': self.middle_name or '',
            'lastName': self.last_name,
            'fullName': self.full_name,
            'email': self.email,
            'phoneNumber': self.phone_number,
            'role': Role(self.role).value,
            'institution': self.institution,
            'course': self.course,
            'yearOfStudy': self.year_of_study,
            'department': self.department,
            'subdepartment': self.subdepartment,
            'profilePicture': self.profile_picture or '',
            'isActive': self.is_active,
            'mustChangePassword': self.must_change_password,
            'createdBy': self.created_by_id,
            'createdAt': _iso(self.created_at),
        }


class Application(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    applicant_role = db.Column(_enum_column(Role), nullable=False)

    # Intern documents
    appointment_letter = db.Column(db.String(200))
    degree_certificate = db.Column(db.String(200))
    transcripts = db.Column(db.String(200))
    national_id_or_passport = db.Column(db.String(200))
    kra_pin_certificate = db.Column(db.String(200))
    good_conduct_certificate = db.Column(db.String(200))
    passport_photos = db.Column(db.String(200))
    shif_card = db.Column(db.String(200))
    insurance_cover = db.Column(db.String(200))
    nssf_card = db.Column(db.String(200))
    bio_data_form = db.Column(db.String(200))

    # Attachee documents
    application_letter = db.Column(db.String(200))
    cv = db.Column(db.String(200))
    attachee_transcripts = db.Column(db.String(200))
    recommendation_letter = db.Column(db.String(200))
    attachee_national_id = db.Column(db.String(200))
    attachee_insurance = db.Column(db.String(200))
    good_conduct_cert_or_receipt = db.Column(db.String(200))

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    preferred_department = db.Column(db.String(50), nullable=False, index=True)
    preferred_subdepartment = db.Column(db.String(50), nullable=False)

    status = db.Column(_enum_column(ApplicationStatus), nullable=False,
                       default=ApplicationStatus.PENDING, index=True)

    # Review
    hr_comments = db.Column(db.Text)
    reviewed_by_hr_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    hr_review_date = db.Column(db.DateTime)
    hod_comments = db.Column(db.Text)
    reviewed_by_hod_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    hod_review_date = db.Column(db.DateTime)

    # Offer
    offer_email_sent = db.Column(db.Boolean, default=False, nullable=False)
    offer_email_sent_at = db.Column(db.DateTime)
    offer_email_sent_by_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', foreign_keys=[user_id],
                           backref=db.backref('applications', cascade='all, delete-orphan'))
    reviewed_by_hr = db.relationship('User', foreign_keys=[reviewed_by_hr_id])
    reviewed_by_hod = db.relationship('User', foreign_keys=[reviewed_by_hod_id])

    # Upload field name (wire) <-> column attribute
    DOCUMENT_COLUMNS = {
        'appointmentLetter': 'appointment_letter',
        'degreeCertificate': 'degree_certificate',
        'transcripts': 'transcripts',
        'nationalIdOrPassport': 'national_id_or_passport',
        'kraPinCertificate': 'kra_pin_certificate',
        'goodConductCertificate': 'good_conduct_certificate',
        'passportPhotos': 'passport_photos',
        'shifCard': 'shif_card',
        'insuranceCover': 'insurance_cover',
        'nssfCard': 'nssf_card',
        'bioDataForm': 'bio_data_form',
        'applicationLetter': 'application_letter',
        'cv': 'cv',
        'attacheeTranscripts': 'attachee_transcripts',
        'recommendationLetter': 'recommendation_letter',
        'attacheeNationalId': 'attachee_national_id',
        'attacheeInsurance': 'attachee_insurance',
        'goodConductCertOrReceipt': 'good_conduct_cert_or_receipt',
    }

    def set_document(self, field, path):
        setattr(self, self.DOCUMENT_COLUMNS[field], path)

    def get_document(self, field):
        return getattr(self, self.DOCUMENT_COLUMNS[field])

    @property
    def documents(self):
        return {f: self.get_document(f) for f in ALL_DOCUMENT_FIELDS if self.get_document(f)}

    @property
    def national_id_document(self):
        return self.get_document(NATIONAL_ID_DOCUMENT[Role(self.applicant_role)])

    def to_dict(self, include_user=True):
        data = {
            'id': self.id,
            'user': self.user_id,
            'applicantRole': Role(self.applicant_role).value,
            'documents': self.documents,
            'nationalId': self.national_id_document,
            'startDate': _iso(self.start_date),
            'endDate': _iso(self.end_date),
            'preferredDepartment': self.preferred_department,
            'preferredSubdepartment': self.preferred_subdepartment,
            'status': ApplicationStatus(self.status).value,
            'hrComments': self.hr_comments,
            'reviewedByHR': self.reviewed_by_hr_id,
            'hrReviewDate': _iso(self.hr_review_date),
            'hodComments': self.hod_comments,
            'reviewedByHOD': self.reviewed_by_hod_id,
            'hodReviewDate': _iso(self.hod_review_date),
            'offerEmailSent': self.offer_email_sent,
            'offerEmailSentAt': _iso(self.offer_email_sent_at),
            'offerEmailSentBy': self.offer_email_sent_by_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
        if include_user and self.user is not None:
            data['user'] = self.user.to_dict()
        return data


class AuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('application.id', ondelete='CASCADE'), index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    action = db.Column(db.String(50), nullable=False)
    details = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow)
