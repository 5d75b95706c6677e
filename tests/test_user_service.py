import pytest

from ims.constants import Role
from ims.errors import ValidationError, Unauthenticated, Forbidden, NotFound, Conflict
from ims.extensions import db
from ims.models import User, Application
from ims.services.user_service import UserService


def _profile(role='intern', **overrides):
    data = {
        'first_name': 'Grace',
        'middle_name': '',
        'last_name': 'Chebet',
        'email': 'Grace.Chebet@Example.com',
        'phone_number': '0711000000',
        'role': role,
        'institution': 'Egerton University',
        'course': 'Statistics',
        'year_of_study': '4',
        'department': 'SDPA',
        'subdepartment': 'ICT',
    }
    data.update(overrides)
    return data


@pytest.mark.usefixtures('app')
class TestRegister:
    def test_registers_applicant(self, outbox):
        user = UserService.register(_profile(password='secret123'))

        assert user.email == 'grace.chebet@example.com'
        assert user.role is Role.INTERN
        assert user.check_password('secret123')
        assert user.must_change_password is False
        assert outbox[0].subject == 'Welcome to Intern Management System'

    def test_staff_roles_cannot_self_register(self):
        with pytest.raises(ValidationError):
            UserService.register(_profile(role='hr', password='secret123'))

    def test_short_password(self):
        with pytest.raises(ValidationError) as exc:
            UserService.register(_profile(password='123'))
        assert exc.value.fields == ['password']

    def test_duplicate_email_is_case_insensitive(self):
        UserService.register(_profile(password='secret123'))
        with pytest.raises(Conflict):
            UserService.register(_profile(email='GRACE.CHEBET@example.com', password='secret123'))

    def test_applicant_profile_required(self):
        with pytest.raises(ValidationError) as exc:
            UserService.register(_profile(password='secret123', institution='', course=None))
        assert set(exc.value.fields) == {'institution', 'course'}

    def test_blank_subdepartment_must_be_valid(self):
        with pytest.raises(ValidationError) as exc:
            UserService.register(_profile(password='secret123', subdepartment=''))
        assert exc.value.fields == ['subdepartment']


class TestAuthenticate:
    def test_success(self, make_user):
        user = make_user(Role.HR, 'SDPA', 'HRMD', email='hr@example.com')
        assert UserService.authenticate(' HR@example.com ', 'secret123').id == user.id

    @pytest.mark.parametrize('email, password', [
        ('hr@example.com', 'wrong-password'),
        ('nobody@example.com', 'secret123'),
    ])
    def test_bad_credentials(self, make_user, email, password):
        make_user(Role.HR, 'SDPA', 'HRMD', email='hr@example.com')
        with pytest.raises(Unauthenticated):
            UserService.authenticate(email, password)

    def test_role_must_match(self, make_user):
        make_user(Role.HR, 'SDPA', 'HRMD', email='hr@example.com')
        with pytest.raises(Unauthenticated):
            UserService.authenticate('hr@example.com', 'secret123', role='hod')

    def test_inactive_account(self, make_user):
        user = make_user(Role.INTERN, email='old@example.com')
        user.is_active_account = False
        db.session.commit()
        with pytest.raises(Unauthenticated):
            UserService.authenticate('old@example.com', 'secret123')


class TestCreateUser:
    def test_admin_creates_hod(self, make_user, outbox):
        admin = make_user(Role.ADMIN)
        user, temp_password = UserService.create_user(
            admin, _profile(role='hod', email='hod@example.com', subdepartment='FINANCE'))

        assert user.role is Role.HOD
        assert (user.department, user.subdepartment) == ('SDPA', 'FINANCE')
        assert user.must_change_password is True
        assert user.created_by_id == admin.id
        assert user.check_password(temp_password)
        assert len(temp_password) == 6
        assert temp_password in outbox[0].html

    def test_cos_has_no_subdepartment(self, make_user):
        admin = make_user(Role.ADMIN)
        user, _ = UserService.create_user(admin, _profile(role='chief_of_staff', email='cos@example.com'))
        assert (user.department, user.subdepartment) == ('SDPA', None)

    def test_admin_accounts_have_no_department(self, make_user):
        admin = make_user(Role.ADMIN)
        user, _ = UserService.create_user(admin, _profile(role='admin', email='root@example.com'))
        assert user.department is None

    def test_hr_limited_to_applicants(self, make_user):
        hr = make_user(Role.HR, 'SDPA', 'HRMD')
        user, _ = UserService.create_user(hr, _profile(role='attachee'))
        assert user.role is Role.ATTACHEE
        assert UserService.list_created_by(hr) == [user]

        with pytest.raises(Forbidden):
            UserService.create_user(hr, _profile(role='hod', email='x@example.com'))

    def test_other_roles_refused(self, make_user):
        hod = make_user(Role.HOD, 'SDPA', 'ICT')
        with pytest.raises(Forbidden):
            UserService.create_user(hod, _profile())

    def test_unknown_department(self, make_user):
        admin = make_user(Role.ADMIN)
        with pytest.raises(ValidationError) as exc:
            UserService.create_user(admin, _profile(role='hr', department='MOD'))
        assert exc.value.fields == ['department']


class TestAccountMaintenance:
    def test_change_password(self, make_user):
        user = make_user(Role.INTERN)
        user.must_change_password = True
        UserService.change_password(user, 'secret123', 'better-secret')
        assert user.check_password('better-secret')
        assert user.must_change_password is False

    def test_change_password_checks_current(self, make_user):
        user = make_user(Role.INTERN)
        with pytest.raises(Unauthenticated):
            UserService.change_password(user, 'not-it', 'better-secret')

    def test_change_password_must_differ(self, make_user):
        user = make_user(Role.INTERN)
        with pytest.raises(ValidationError):
            UserService.change_password(user, 'secret123', 'secret123')

    def test_forgot_password(self, make_user, outbox):
        user = make_user(Role.INTERN, email='lost@example.com')
        assert UserService.forgot_password('lost@example.com') is True
        assert user.must_change_password is True
        assert not user.check_password('secret123')
        assert outbox[0].subject == 'Password Reset - IMS Account'

    def test_forgot_password_unknown_email(self, outbox):
        assert UserService.forgot_password('ghost@example.com') is False
        assert len(outbox) == 0

    def test_set_department(self, make_user):
        hod = make_user(Role.HOD)
        UserService.set_department(hod, 'OPCS', 'ICT')
        assert (hod.department, hod.subdepartment) == ('OPCS', 'ICT')

    def test_admin_has_no_department(self, make_user):
        with pytest.raises(Forbidden):
            UserService.set_department(make_user(Role.ADMIN), 'SDPA', 'ICT')

    def test_update_profile(self, make_user):
        user = make_user(Role.INTERN, 'SDPA', 'ICT')
        UserService.update_profile(user, {'course': 'Economics', 'phone_number': None})
        assert user.course == 'Economics'
        assert user.phone_number == '0712345678'


class TestDirectory:
    def test_lists_split_staff_and_applicants(self, make_user):
        admin = make_user(Role.ADMIN)
        hr = make_user(Role.HR, 'SDPA', 'HRMD')
        intern = make_user(Role.INTERN)

        assert UserService.list_staff() == [hr]
        assert UserService.list_applicants() == [intern]
        assert admin not in UserService.list_staff()

    def test_delete_removes_applications(self, make_user, make_application):
        admin = make_user(Role.ADMIN)
        intern = make_user(Role.INTERN)
        make_application(intern)
        intern_id = intern.id

        UserService.delete_user(admin, intern_id)
        assert db.session.get(User, intern_id) is None
        assert Application.query.count() == 0

    def test_admins_cannot_be_deleted(self, make_user):
        admin = make_user(Role.ADMIN)
        other = make_user(Role.ADMIN)
        with pytest.raises(ValidationError):
            UserService.delete_user(admin, other.id)

    def test_missing_user(self, make_user):
        with pytest.raises(NotFound):
            UserService.reset_password(make_user(Role.ADMIN), 404)

    def test_reset_password(self, make_user, outbox):
        admin = make_user(Role.ADMIN)
        hod = make_user(Role.HOD, 'SDPA', 'ICT')
        user, temp_password = UserService.reset_password(admin, hod.id)
        assert user.check_password(temp_password)
        assert user.must_change_password is True
        assert outbox[0].recipients == [hod.email]
