import logging
from ims.constants import Role, APPLICANT_ROLES, STAFF_ROLES, NO_SUBDEPARTMENT
from ims.departments import get_catalog
from ims.errors import ValidationError, Unauthenticated, Forbidden, NotFound, Conflict
from ims.extensions import db
from ims.models import User
from ims.utils import generate_temp_password
from ims import notifications

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
APPLICANT_PROFILE_FIELDS = ('institution', 'course', 'year_of_study')


class UserService:
    @staticmethod
    def _parse_role(value):
        try:
            return Role((value or '').strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid role '{value}'", fields=['role'])

    @staticmethod
    def _department_assignment(role, department, subdepartment):
        """Validated (department, subdepartment) for a user of ``role``."""
        if role is Role.ADMIN:
            return None, None

        catalog = get_catalog()
        department = str(department or '').strip()
        if not catalog.exists(department):
            raise ValidationError("A valid department is required", fields=['department'])

        if not role.needs_subdepartment:
            # COS and PS work across the whole department
            return department, None

        subdepartment = catalog.normalise_subdepartment(subdepartment)
        if not catalog.validate(department, subdepartment):
            raise ValidationError("Invalid subdepartment for the selected department",
                                  fields=['subdepartment'])
        return department, subdepartment

    @staticmethod
    def _check_identity_fields(data):
        missing = [f for f in ('first_name', 'last_name', 'email', 'phone_number')
                   if not (data.get(f) or '').strip()]
        if missing:
            raise ValidationError("Name, email and phone number are mandatory fields.", fields=missing)

    @staticmethod
    def _check_applicant_fields(role, data):
        if role not in APPLICANT_ROLES:
            return
        missing = [f for f in APPLICANT_PROFILE_FIELDS if not (data.get(f) or '').strip()]
        if missing:
            raise ValidationError(
                "Institution, course, and year of study are required for interns/attachees",
                fields=missing
            )

    @staticmethod
    def _ensure_email_free(email):
        if User.query.filter_by(email=email).first():
            raise Conflict("User with this email already exists")

    @classmethod
    def _build_user(cls, role, data):
        cls._check_identity_fields(data)
        cls._check_applicant_fields(role, data)
        email = User.normalise_email(data['email'])
        cls._ensure_email_free(email)
        department, subdepartment = cls._department_assignment(
            role, data.get('department'), data.get('subdepartment'))

        user = User(
            first_name=data['first_name'].strip(),
            middle_name=(data.get('middle_name') or '').strip(),
            last_name=data['last_name'].strip(),
            email=email,
            phone_number=data['phone_number'].strip(),
            role=role,
            department=department,
            subdepartment=subdepartment,
        )
        if role in APPLICANT_ROLES:
            user.institution = data['institution'].strip()
            user.course = data['course'].strip()
            user.year_of_study = str(data['year_of_study']).strip()
        return user

    # --- SELF SERVICE ---

    @classmethod
    def register(cls, data, profile_picture=None):
        """Public sign-up, interns and attachees only."""
        role = cls._parse_role(data.get('role'))
        if role not in APPLICANT_ROLES:
            raise ValidationError("Invalid role for registration", fields=['role'])

        password = data.get('password') or ''
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                                  fields=['password'])

        user = cls._build_user(role, data)
        user.set_password(password)
        if profile_picture:
            user.profile_picture = profile_picture
        db.session.add(user)
        db.session.commit()

        logger.info("Registered %s (%s)", user.email, role.value)
        notifications.notify_welcome(user)
        return user

    @staticmethod
    def authenticate(email, password, role=None):
        if not email or not password:
            raise ValidationError("Please provide email and password", fields=['email', 'password'])

        user = User.query.filter_by(email=User.normalise_email(email)).first()
        if not user:
            raise Unauthenticated("Invalid email or password")
        if role and Role(user.role).value != role:
            raise Unauthenticated(f"Invalid credentials for {role}")
        if not user.check_password(password):
            logger.warning("Failed login for %s", user.email)
            raise Unauthenticated("Invalid email or password")
        if not user.is_active:
            raise Unauthenticated("Your account has been deactivated")
        return user

    @staticmethod
    def update_profile(user, data, profile_picture=None):
        for field in ('first_name', 'middle_name', 'last_name', 'phone_number',
                      'institution', 'course', 'year_of_study'):
            value = data.get(field)
            if value:
                setattr(user, field, str(value).strip())

        if data.get('department') or data.get('subdepartment'):
            user.department, user.subdepartment = UserService._department_assignment(
                Role(user.role),
                data.get('department') or user.department,
                data.get('subdepartment') or user.subdepartment
            )

        if profile_picture:
            user.profile_picture = profile_picture

        if data.get('password'):
            if len(data['password']) < MIN_PASSWORD_LENGTH:
                raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                                      fields=['password'])
            user.set_password(data['password'])

        db.session.commit()
        return user

    @staticmethod
    def set_department(user, department, subdepartment=None):
        role = Role(user.role)
        if role is Role.ADMIN:
            raise Forbidden("Admins do not need departments")
        user.department, user.subdepartment = UserService._department_assignment(
            role, department, subdepartment)
        db.session.commit()
        return user

    @staticmethod
    def change_password(user, current_password, new_password):
        if not current_password or not new_password:
            raise ValidationError("Please provide both current and new password",
                                  fields=['currentPassword', 'newPassword'])
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long",
                                  fields=['newPassword'])
        if not user.check_password(current_password):
            raise Unauthenticated("Current password is incorrect")
        if user.check_password(new_password):
            raise ValidationError("New password must be different from current password",
                                  fields=['newPassword'])

        user.set_password(new_password)
        user.must_change_password = False
        db.session.commit()
        logger.info("Password changed for %s", user.email)
        return user

    @staticmethod
    def forgot_password(email):
        """Mails a temporary password. Unknown emails are ignored silently."""
        user = User.query.filter_by(email=User.normalise_email(email)).first()
        if not user:
            return False
        temp_password = generate_temp_password()
        user.set_password(temp_password)
        user.must_change_password = True
        db.session.commit()
        notifications.notify_password_reset(user, temp_password)
        return True

    # --- PROVISIONING (ADMIN / HR) ---

    @classmethod
    def create_user(cls, actor, data):
        """
        Creates an account on behalf of ``actor`` and mails a temporary password.
        Admins may create any role; HR may create interns and attachees only.
        Returns (user, temporary_password).
        """
        actor_role = Role(actor.role)
        role = cls._parse_role(data.get('role'))
        if actor_role is Role.HR:
            if role not in APPLICANT_ROLES:
                raise Forbidden("HR can only create intern and attachee accounts")
        elif actor_role is not Role.ADMIN:
            raise Forbidden("You are not allowed to create accounts")

        user = cls._build_user(role, data)
        temp_password = generate_temp_password()
        user.set_password(temp_password)
        user.must_change_password = True
        user.created_by_id = actor.id
        db.session.add(user)
        db.session.commit()

        logger.info("%s created %s account %s", actor.email, role.value, user.email)
        notifications.notify_account_created(user, temp_password, actor.full_name)
        return user, temp_password

    @staticmethod
    def list_staff():
        return (User.query.filter(User.role.in_(list(STAFF_ROLES)))
                .order_by(User.created_at.desc(), User.id.desc()).all())

    @staticmethod
    def list_applicants():
        return (User.query.filter(User.role.in_(list(APPLICANT_ROLES)))
                .order_by(User.created_at.desc(), User.id.desc()).all())

    @staticmethod
    def list_created_by(actor):
        return (User.query.filter(User.created_by_id == actor.id,
                                  User.role.in_(list(APPLICANT_ROLES)))
                .order_by(User.created_at.desc(), User.id.desc()).all())

    @staticmethod
    def get_user(user_id):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    @staticmethod
    def delete_user(actor, user_id):
        """Deletes a user permanently, protecting admins."""
        user = UserService.get_user(user_id)
        if Role(user.role) is Role.ADMIN:
            raise ValidationError("Cannot delete admin users")
        db.session.delete(user)
        db.session.commit()
        logger.info("User %s deleted by %s", user.email, actor.email)
        return True

    @staticmethod
    def reset_password(actor, user_id):
        user = UserService.get_user(user_id)
        temp_password = generate_temp_password()
        user.set_password(temp_password)
        user.must_change_password = True
        db.session.commit()
        logger.info("Password for %s reset by %s", user.email, actor.email)
        notifications.notify_password_reset(user, temp_password)
        return user, temp_password

    @staticmethod
    def resend_credentials(actor, user_id):
        user = UserService.get_user(user_id)
        temp_password = generate_temp_password()
        user.set_password(temp_password)
        user.must_change_password = True
        db.session.commit()
        notifications.notify_account_created(user, temp_password, actor.full_name)
        return user, temp_password
