from datetime import datetime, date

import pytest

from ims.constants import Role, ApplicationStatus
from ims.errors import Forbidden, ValidationError
from ims.services.access_filter import visible_applications, parse_filters, can_view


@pytest.fixture
def population(make_user, make_application):
    """Five applications spread across units, oldest first."""
    alice = make_user(Role.INTERN, email='alice@example.com', first_name='Alice', last_name='Wanjiku', institution='Strathmore University')
    brian = make_user(Role.ATTACHEE, email='brian@example.com', first_name='Brian', last_name='Otieno', institution='Moi University')
    carol = make_user(Role.INTERN, email='carol@example.com', first_name='Carol', last_name='Akinyi', institution='Kenyatta University')
    dan = make_user(Role.ATTACHEE, email='dan@example.com', first_name='Dan', last_name='Kamau', institution='Moi University')
    eve = make_user(Role.INTERN, email='eve@example.com', first_name='Eve', last_name='Mutua', institution='JKUAT')

    return {
        'alice': make_application(alice, 'SDPA', 'ICT', created_at=datetime(2026, 6, 1),
                                  start_date=date(2026, 7, 1)),
        'brian': make_application(brian, 'SDPA', 'FINANCE', ApplicationStatus.HOD_REVIEW,
                                  created_at=datetime(2026, 7, 1), start_date=date(2026, 8, 1)),
        'carol': make_application(carol, 'OPCS', 'ICT', ApplicationStatus.APPROVED,
                                  created_at=datetime(2026, 8, 1), start_date=date(2026, 7, 1)),
        'dan': make_application(dan, 'SDPA', 'ICT', ApplicationStatus.HR_REVIEW,
                                created_at=datetime(2026, 9, 1), start_date=date(2026, 9, 1)),
        'eve': make_application(eve, 'OPCS', 'SCM', ApplicationStatus.REJECTED,
                                created_at=datetime(2026, 10, 1), start_date=date(2026, 7, 1)),
    }


def _ids(applications):
    return [a.id for a in applications]


def _names(population, *keys):
    return [population[k].id for k in keys]


class TestScopes:
    def test_hr_sees_everything_newest_first(self, make_user, population):
        hr = make_user(Role.HR, 'SDPA', 'HRMD')
        assert _ids(visible_applications(hr)) == _names(population, 'eve', 'dan', 'carol', 'brian', 'alice')

    def test_hod_sees_own_unit_only(self, make_user, population):
        hod = make_user(Role.HOD, 'SDPA', 'ICT')
        assert _ids(visible_applications(hod)) == _names(population, 'dan', 'alice')

    def test_hod_scope_ignores_requested_filters(self, make_user, population):
        hod = make_user(Role.HOD, 'SDPA', 'ICT')
        filters = parse_filters({'department': 'OPCS', 'subdepartment': 'SCM'})
        assert _ids(visible_applications(hod, filters)) == _names(population, 'dan', 'alice')

    @pytest.mark.parametrize('role', [Role.CHIEF_OF_STAFF, Role.PRINCIPAL_SECRETARY])
    def test_cos_and_ps_see_whole_department(self, make_user, population, role):
        viewer = make_user(role, 'OPCS')
        assert _ids(visible_applications(viewer)) == _names(population, 'eve', 'carol')

    def test_cos_cannot_leave_department(self, make_user, population):
        cos = make_user(Role.CHIEF_OF_STAFF, 'OPCS')
        filters = parse_filters({'department': 'SDPA'})
        assert _ids(visible_applications(cos, filters)) == _names(population, 'eve', 'carol')

    def test_cos_may_narrow_to_a_unit(self, make_user, population):
        cos = make_user(Role.CHIEF_OF_STAFF, 'OPCS')
        filters = parse_filters({'subdepartment': 'SCM'})
        assert _ids(visible_applications(cos, filters)) == _names(population, 'eve')

    @pytest.mark.parametrize('role', [Role.ADMIN, Role.INTERN, Role.ATTACHEE])
    def test_non_viewers_are_refused(self, make_user, population, role):
        user = make_user(role)
        with pytest.raises(Forbidden):
            visible_applications(user)


class TestFilters:
    @pytest.fixture
    def hr(self, make_user):
        return make_user(Role.HR, 'SDPA', 'HRMD')

    def test_department_and_subdepartment(self, hr, population):
        filters = parse_filters({'department': 'SDPA', 'subdepartment': 'ICT'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'dan', 'alice')

    @pytest.mark.parametrize('status', ['pending', 'hr_review'])
    def test_awaiting_hr_is_one_queue(self, hr, population, status):
        filters = parse_filters({'status': status})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'dan', 'alice')

    def test_terminal_status(self, hr, population):
        assert _ids(visible_applications(hr, parse_filters({'status': 'approved'}))) == _names(population, 'carol')

    def test_role(self, hr, population):
        filters = parse_filters({'role': 'attachee'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'dan', 'brian')

    def test_date_range_is_inclusive(self, hr, population):
        filters = parse_filters({'startDate': '2026-07-01', 'endDate': '2026-08-01'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'carol', 'brian')

    @pytest.mark.parametrize('term, expected', [
        ('wanjiku', ['alice']),
        ('MOI', ['dan', 'brian']),
        ('carol@', ['carol']),
        ('parliamentary', ['dan', 'brian', 'alice']),
        ('opcs', ['eve', 'carol']),
    ])
    def test_search(self, hr, population, term, expected):
        filters = parse_filters({'search': term})
        assert _ids(visible_applications(hr, filters)) == _names(population, *expected)

    def test_sort_by_name_ascending(self, hr, population):
        filters = parse_filters({'sortBy': 'name', 'sortOrder': 'asc'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'alice', 'brian', 'carol', 'dan', 'eve')

    def test_sort_ties_keep_arrival_order(self, hr, population):
        """Three applications share a start date; they stay newest first."""
        filters = parse_filters({'sortBy': 'startDate', 'sortOrder': 'asc'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'eve', 'carol', 'alice', 'brian', 'dan')

        filters = parse_filters({'sortBy': 'startDate', 'sortOrder': 'desc'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'dan', 'brian', 'eve', 'carol', 'alice')

    def test_sort_by_department(self, hr, population):
        filters = parse_filters({'sortBy': 'department', 'sortOrder': 'asc'})
        assert _ids(visible_applications(hr, filters)) == _names(population, 'eve', 'carol', 'dan', 'brian', 'alice')


class TestParseFilters:
    def test_defaults(self):
        filters = parse_filters({})
        assert filters['sort_by'] == 'createdAt'
        assert filters['sort_order'] == 'desc'
        assert filters['status'] is None

    @pytest.mark.parametrize('args, field', [
        ({'sortBy': 'salary'}, 'sortBy'),
        ({'sortOrder': 'sideways'}, 'sortOrder'),
        ({'status': 'archived'}, 'status'),
        ({'role': 'hr'}, 'role'),
        ({'startDate': 'yesterday'}, 'startDate'),
    ])
    def test_rejects_bad_arguments(self, args, field):
        with pytest.raises(ValidationError) as exc:
            parse_filters(args)
        assert exc.value.fields == [field]


class TestCanView:
    def test_applicant_sees_own_only(self, make_user, population):
        alice = population['alice'].user
        assert can_view(alice, population['alice'])
        assert not can_view(alice, population['brian'])

    def test_hod_scope(self, make_user, population):
        hod = make_user(Role.HOD, 'SDPA', 'ICT')
        assert can_view(hod, population['dan'])
        assert not can_view(hod, population['brian'])

    def test_admin_sees_none(self, make_user, population):
        admin = make_user(Role.ADMIN)
        assert not can_view(admin, population['alice'])
